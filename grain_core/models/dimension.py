"""The 16 compositional pleasure dimensions and their string lookup table."""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, Iterable, List, Optional


class Category(str, Enum):
    SPATIAL_ENVIRONMENTAL = "Spatial/Environmental"
    COGNITIVE_EXISTENTIAL = "Cognitive/Existential"
    TEMPORAL = "Temporal"
    EMBODIED = "Embodied"
    RELATIONAL_EXTERNAL = "Relational/External"


class Dimension(str, Enum):
    """Closed enumeration of pleasure axes.

    Declaration order is the array offset used by every 16-length vector.
    """

    ORDER = "order"
    ENCLOSURE = "enclosure"
    PATH = "path"
    HORIZON = "horizon"
    ANXIETY = "anxiety"
    IGNORANCE = "ignorance"
    REPETITION = "repetition"
    POST = "post"
    FOOD = "food"
    MOBILITY = "mobility"
    EROTIC_UNCERTAINTY = "erotic_uncertainty"
    MATERIAL_PLAY = "material_play"
    POWER = "power"
    NATURE_MIRROR = "nature_mirror"
    SERENDIPITY_FOLLOWING = "serendipity_following"
    ANCHOR_EXPANSION = "anchor_expansion"

    @property
    def offset(self) -> int:
        return _INDEX[self]

    @classmethod
    def at(cls, index: int) -> "Dimension":
        return DIMENSIONS[index]

    @property
    def display_name(self) -> str:
        return " ".join(part.capitalize() for part in self.value.split("_"))

    @property
    def category(self) -> Category:
        return _CATEGORY[self]

    @classmethod
    def from_any(cls, value: "str | Dimension | None") -> "Dimension":
        if isinstance(value, Dimension):
            return value
        found = lookup_dimension(value) if value else None
        if found is None:
            raise ValueError(f"Unknown pleasure dimension: {value}")
        return found


DIMENSIONS: tuple[Dimension, ...] = tuple(Dimension)
DIMENSION_COUNT = len(DIMENSIONS)

_INDEX: Dict[Dimension, int] = {dim: idx for idx, dim in enumerate(DIMENSIONS)}

_CATEGORY: Dict[Dimension, Category] = {
    Dimension.ORDER: Category.SPATIAL_ENVIRONMENTAL,
    Dimension.ENCLOSURE: Category.SPATIAL_ENVIRONMENTAL,
    Dimension.PATH: Category.SPATIAL_ENVIRONMENTAL,
    Dimension.HORIZON: Category.SPATIAL_ENVIRONMENTAL,
    Dimension.ANXIETY: Category.COGNITIVE_EXISTENTIAL,
    Dimension.IGNORANCE: Category.COGNITIVE_EXISTENTIAL,
    Dimension.REPETITION: Category.COGNITIVE_EXISTENTIAL,
    Dimension.POST: Category.TEMPORAL,
    Dimension.FOOD: Category.EMBODIED,
    Dimension.MOBILITY: Category.EMBODIED,
    Dimension.EROTIC_UNCERTAINTY: Category.EMBODIED,
    Dimension.MATERIAL_PLAY: Category.EMBODIED,
    Dimension.POWER: Category.RELATIONAL_EXTERNAL,
    Dimension.NATURE_MIRROR: Category.RELATIONAL_EXTERNAL,
    Dimension.SERENDIPITY_FOLLOWING: Category.RELATIONAL_EXTERNAL,
    Dimension.ANCHOR_EXPANSION: Category.RELATIONAL_EXTERNAL,
}


# ---------------------------------------------------------------------------
# String lookup (AI output / stored payloads -> Dimension)
# ---------------------------------------------------------------------------


def _lookup_key(text: str) -> str:
    return re.sub(r"[\s_\-]+", "", str(text).strip().lower())


def _build_lookup() -> Dict[str, Dimension]:
    table: Dict[str, Dimension] = {}
    for dim in DIMENSIONS:
        parts = dim.value.split("_")
        camel = parts[0] + "".join(p.capitalize() for p in parts[1:])
        for alias in (dim.value, dim.name, dim.display_name, camel, "-".join(parts)):
            table[_lookup_key(alias)] = dim
    return table


_LOOKUP: Dict[str, Dimension] = _build_lookup()

# Longest names first so "nature mirror" wins over any shorter overlap.
_SCAN_PATTERN = re.compile(
    r"\b("
    + "|".join(
        sorted(
            {
                re.escape(dim.value).replace("_", r"[\s_\-]?")
                for dim in DIMENSIONS
            },
            key=len,
            reverse=True,
        )
    )
    + r")\b",
    re.IGNORECASE,
)


def lookup_dimension(text: Optional[str]) -> Optional[Dimension]:
    """Resolve free text to a dimension, or ``None`` when it is not one."""

    if not text:
        return None
    return _LOOKUP.get(_lookup_key(text))


def parse_dimension_tags(tags: Iterable[str] | None) -> List[Dimension]:
    out: List[Dimension] = []
    for tag in tags or ():
        dim = lookup_dimension(tag)
        if dim is not None and dim not in out:
            out.append(dim)
    return out


def scan_dimensions(text: str | None) -> List[Dimension]:
    """Dimensions mentioned in ``text`` in order of first mention."""

    if not text:
        return []
    return parse_dimension_tags(match.group(0) for match in _SCAN_PATTERN.finditer(text))


__all__ = [
    "Category",
    "Dimension",
    "DIMENSIONS",
    "DIMENSION_COUNT",
    "lookup_dimension",
    "parse_dimension_tags",
    "scan_dimensions",
]
