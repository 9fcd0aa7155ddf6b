"""User-level profiles: circadian preferences and coarse user states."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .dimension import Dimension, parse_dimension_tags
from .pleasure import PleasureProfile


class TimeOfDay(str, Enum):
    DAWN = "dawn"            # 05-07
    MORNING = "morning"      # 07-12
    AFTERNOON = "afternoon"  # 12-17
    EVENING = "evening"      # 17-21
    NIGHT = "night"          # 21-05

    @classmethod
    def current(cls, now: Optional[datetime] = None) -> "TimeOfDay":
        hour = (now or datetime.now()).hour
        if 5 <= hour < 7:
            return cls.DAWN
        if 7 <= hour < 12:
            return cls.MORNING
        if 12 <= hour < 17:
            return cls.AFTERNOON
        if 17 <= hour < 21:
            return cls.EVENING
        return cls.NIGHT


def _default_circadian() -> Dict[TimeOfDay, List[Dimension]]:
    return {
        TimeOfDay.DAWN: [Dimension.NATURE_MIRROR, Dimension.MOBILITY],
        TimeOfDay.MORNING: [Dimension.ORDER, Dimension.PATH, Dimension.POWER],
        TimeOfDay.AFTERNOON: [Dimension.MATERIAL_PLAY, Dimension.SERENDIPITY_FOLLOWING],
        TimeOfDay.EVENING: [Dimension.ENCLOSURE, Dimension.FOOD, Dimension.REPETITION],
        TimeOfDay.NIGHT: [Dimension.IGNORANCE, Dimension.HORIZON, Dimension.EROTIC_UNCERTAINTY],
    }


@dataclass
class CircadianProfile:
    """Preferred dimensions per time-of-day bucket."""

    slots: Dict[TimeOfDay, List[Dimension]] = field(default_factory=_default_circadian)

    def dimensions_for(self, time_of_day: TimeOfDay) -> List[Dimension]:
        return list(self.slots.get(time_of_day, []))

    def current_dimensions(self, now: Optional[datetime] = None) -> List[Dimension]:
        return self.dimensions_for(TimeOfDay.current(now))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "CircadianProfile":
        profile = cls()
        for key, dims in (payload or {}).items():
            try:
                slot = TimeOfDay(str(key))
            except ValueError:
                continue
            profile.slots[slot] = parse_dimension_tags(dims)
        return profile


class UserState(str, Enum):
    DEPLETED = "depleted"
    ANXIOUS = "anxious"
    SCATTERED = "scattered"
    NEUTRAL = "neutral"
    CURIOUS = "curious"
    ENERGIZED = "energized"
    FLOWING = "flowing"

    @property
    def suggested_dimensions(self) -> List[Dimension]:
        return list(_USER_STATE_DIMENSIONS[self])


_USER_STATE_DIMENSIONS: Dict[UserState, tuple[Dimension, ...]] = {
    UserState.DEPLETED: (Dimension.FOOD, Dimension.ENCLOSURE, Dimension.REPETITION),
    UserState.ANXIOUS: (Dimension.ORDER, Dimension.PATH, Dimension.NATURE_MIRROR),
    UserState.SCATTERED: (Dimension.ENCLOSURE, Dimension.REPETITION, Dimension.ANCHOR_EXPANSION),
    UserState.NEUTRAL: (Dimension.SERENDIPITY_FOLLOWING, Dimension.MOBILITY),
    UserState.CURIOUS: (Dimension.IGNORANCE, Dimension.HORIZON, Dimension.SERENDIPITY_FOLLOWING),
    UserState.ENERGIZED: (Dimension.MOBILITY, Dimension.POWER, Dimension.MATERIAL_PLAY),
    UserState.FLOWING: (Dimension.POST, Dimension.NATURE_MIRROR, Dimension.EROTIC_UNCERTAINTY),
}


@dataclass
class GrainUser:
    id: Optional[str] = None
    pleasure_profile: PleasureProfile = field(default_factory=PleasureProfile)
    circadian_profile: CircadianProfile = field(default_factory=CircadianProfile)
    current_state: UserState = UserState.NEUTRAL


__all__ = ["TimeOfDay", "CircadianProfile", "UserState", "GrainUser"]
