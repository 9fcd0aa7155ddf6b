"""Data model shared by the session lifecycle and vector analytics."""

from .dimension import (
    DIMENSION_COUNT,
    DIMENSIONS,
    Category,
    Dimension,
    lookup_dimension,
    parse_dimension_tags,
    scan_dimensions,
)
from .pleasure import (
    PROFILE_TRAIT_THRESHOLD,
    SESSION_DOMINANT_THRESHOLD,
    PleasureProfile,
    PleasureVector,
)
from .profile import CircadianProfile, GrainUser, TimeOfDay, UserState
from .session import Session, SessionState

__all__ = [
    "Category",
    "Dimension",
    "DIMENSIONS",
    "DIMENSION_COUNT",
    "lookup_dimension",
    "parse_dimension_tags",
    "scan_dimensions",
    "PleasureVector",
    "PleasureProfile",
    "SESSION_DOMINANT_THRESHOLD",
    "PROFILE_TRAIT_THRESHOLD",
    "CircadianProfile",
    "GrainUser",
    "TimeOfDay",
    "UserState",
    "Session",
    "SessionState",
]
