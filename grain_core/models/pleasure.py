from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .dimension import DIMENSIONS, Dimension, lookup_dimension

# Post-hoc session analysis and profile-level trait analysis use different cut-offs.
SESSION_DOMINANT_THRESHOLD = 0.3
PROFILE_TRAIT_THRESHOLD = 0.6


def _coerce_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _dims_from_payload(values: Any) -> List[Dimension]:
    out: List[Dimension] = []
    for raw in values or ():
        dim = lookup_dimension(raw)
        if dim is not None:
            out.append(dim)
    return out


def _dim_map_from_payload(values: Any) -> Dict[Dimension, float]:
    out: Dict[Dimension, float] = {}
    if not isinstance(values, Mapping):
        return out
    for raw, intensity in values.items():
        dim = lookup_dimension(raw)
        if dim is not None:
            out[dim] = _coerce_float(intensity)
    return out


@dataclass(eq=False)
class PleasureVector:
    """Per-session pleasure signature.

    ``activated_dimensions`` is the sparse activation map; ``embedding`` is the
    dense, unit-length 16-vector derived from it for similarity search.
    """

    primary: List[Dimension] = field(default_factory=list)
    secondary: List[Dimension] = field(default_factory=list)
    intensities: Dict[Dimension, float] = field(default_factory=dict)
    embedding: List[float] = field(default_factory=list)
    activated_dimensions: Dict[Dimension, float] = field(default_factory=dict)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PleasureVector):
            return NotImplemented
        return self.embedding == other.embedding and self.primary == other.primary

    def activate(self, dimension: Dimension, intensity: float = 0.7) -> None:
        self.activated_dimensions[dimension] = float(intensity)
        if dimension not in self.primary and intensity > 0.5:
            self.primary.append(dimension)

    @property
    def dominant_dimensions(self) -> List[Dimension]:
        """Activated entries above 0.3, strongest first."""

        ranked = [
            (dim, value)
            for dim, value in self.activated_dimensions.items()
            if value > SESSION_DOMINANT_THRESHOLD
        ]
        ranked.sort(key=lambda kv: kv[1], reverse=True)
        return [dim for dim, _ in ranked]

    @property
    def dominant_dimension(self) -> Optional[Dimension]:
        dominant = self.dominant_dimensions
        if dominant:
            return dominant[0]
        return self.primary[0] if self.primary else None

    def to_vector(self) -> List[float]:
        if self.embedding:
            return list(self.embedding)
        return [float(self.intensities.get(dim, 0.0)) for dim in DIMENSIONS]

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary": [dim.value for dim in self.primary],
            "secondary": [dim.value for dim in self.secondary],
            "intensities": {dim.value: float(v) for dim, v in self.intensities.items()},
            "embedding": [float(v) for v in self.embedding],
            "activated_dimensions": {
                dim.value: float(v) for dim, v in self.activated_dimensions.items()
            },
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "PleasureVector":
        payload = payload or {}
        embedding = payload.get("embedding") or []
        return cls(
            primary=_dims_from_payload(payload.get("primary")),
            secondary=_dims_from_payload(payload.get("secondary")),
            intensities=_dim_map_from_payload(payload.get("intensities")),
            embedding=[_coerce_float(v) for v in embedding] if isinstance(embedding, list) else [],
            activated_dimensions=_dim_map_from_payload(payload.get("activated_dimensions")),
        )


@dataclass
class PleasureProfile:
    """Dense trait-level profile over all 16 dimensions."""

    values: Dict[Dimension, float] = field(
        default_factory=lambda: {dim: 0.5 for dim in DIMENSIONS}
    )

    def __getitem__(self, dimension: Dimension) -> float:
        return float(self.values.get(dimension, 0.0))

    def __setitem__(self, dimension: Dimension, value: float) -> None:
        self.values[dimension] = float(value)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "PleasureProfile":
        profile = cls()
        for dim, value in _dim_map_from_payload(payload).items():
            profile[dim] = value
        return profile

    def to_dict(self) -> dict[str, float]:
        return {dim.value: self[dim] for dim in DIMENSIONS}

    def to_vector(self) -> List[float]:
        return [self[dim] for dim in DIMENSIONS]

    def activated_dimensions(self, threshold: float = PROFILE_TRAIT_THRESHOLD) -> List[Dimension]:
        """Trait dimensions at or above ``threshold``, strongest first."""

        selected = [dim for dim in DIMENSIONS if self[dim] >= threshold]
        return sorted(selected, key=lambda dim: self[dim], reverse=True)


__all__ = [
    "PleasureVector",
    "PleasureProfile",
    "SESSION_DOMINANT_THRESHOLD",
    "PROFILE_TRAIT_THRESHOLD",
]
