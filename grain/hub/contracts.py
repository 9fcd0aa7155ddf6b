"""Boundary contracts for the storage, AI rendering and profile collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from grain_core.models.profile import CircadianProfile
from grain_core.models.session import Session


class SessionStore(Protocol):
    """Document-store contract. Failures surface as ordinary exceptions."""

    async def create_session(self, user_id: str) -> Session:
        """Create and return a new session record for ``user_id``."""

    async def update_session(self, session: Session) -> None:
        """Persist ``session`` (merge by id)."""

    async def fetch_sessions(self, user_id: str, limit: int = 50) -> List[Session]:
        """Return the user's sessions, newest first."""

    async def find_neighbors(self, embedding: Sequence[float], limit: int = 10) -> List[Session]:
        """Return sessions whose embeddings are nearest to ``embedding``."""


@dataclass
class RenderedText:
    """Renderer output: prose plus any dimension names echoed back."""

    text: str
    dimension_tags: List[str] = field(default_factory=list)


@dataclass
class InsightContext:
    """Structured, wording-free context handed to the renderer."""

    kind: str
    system_role: str
    dimensions: Dict[str, List[str]] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "system_role": self.system_role,
            "dimensions": {k: list(v) for k, v in self.dimensions.items()},
            "counts": dict(self.counts),
            "extra": dict(self.extra),
        }


class InsightRenderer(Protocol):
    """Opaque text generator. No retries are expected from the engine."""

    async def render(self, context: InsightContext) -> RenderedText:
        ...


class ProfileSource(Protocol):
    async def circadian_profile(self, user_id: str) -> Optional[CircadianProfile]:
        ...


__all__ = [
    "SessionStore",
    "InsightRenderer",
    "ProfileSource",
    "InsightContext",
    "RenderedText",
]
