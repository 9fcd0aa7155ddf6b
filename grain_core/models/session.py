from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .pleasure import PleasureVector


class SessionState(str, Enum):
    IDLE = "idle"
    DRIFT = "drift"
    MASTERY = "mastery"
    SOCIAL_SYNC = "social_sync"
    REFLECTION = "reflection"

    @property
    def display_name(self) -> str:
        if self is SessionState.SOCIAL_SYNC:
            return "Social Sync"
        return self.value.capitalize()

    @property
    def valid_transitions(self) -> Tuple["SessionState", ...]:
        return _TRANSITIONS[self]

    def can_transition(self, target: "SessionState") -> bool:
        return target in _TRANSITIONS[self]


# Directed: reflection only drains to idle, idle only opens into drift.
_TRANSITIONS: Dict[SessionState, Tuple[SessionState, ...]] = {
    SessionState.IDLE: (SessionState.DRIFT,),
    SessionState.DRIFT: (SessionState.MASTERY, SessionState.SOCIAL_SYNC, SessionState.REFLECTION),
    SessionState.MASTERY: (SessionState.DRIFT, SessionState.SOCIAL_SYNC, SessionState.REFLECTION),
    SessionState.SOCIAL_SYNC: (SessionState.DRIFT, SessionState.MASTERY, SessionState.REFLECTION),
    SessionState.REFLECTION: (SessionState.IDLE,),
}


def _parse_ts(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    # Offset-less stamps are UTC; mixing naive and aware values breaks ordering.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _safe_state(value: Any, default: SessionState = SessionState.IDLE) -> SessionState:
    try:
        return SessionState(str(value))
    except ValueError:
        return default


@dataclass
class Session:
    """One bounded activity session as stored by the document backend."""

    user_id: str
    id: Optional[str] = None
    state: SessionState = SessionState.IDLE
    state_history: List[SessionState] = field(default_factory=list)
    timestamp_start: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    timestamp_end: Optional[datetime] = None
    transcript_url: Optional[str] = None
    media_urls: List[str] = field(default_factory=list)
    pleasure_vector: Optional[PleasureVector] = None
    notes: Optional[str] = None
    embedding_id: Optional[str] = None

    def transition(self, new_state: SessionState) -> None:
        self.state_history.append(self.state)
        self.state = new_state

    @property
    def duration(self) -> Optional[float]:
        if self.timestamp_end is None:
            return None
        return (self.timestamp_end - self.timestamp_start).total_seconds()

    @property
    def embedding(self) -> List[float]:
        if self.pleasure_vector is None:
            return []
        return self.pleasure_vector.embedding

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "state": self.state.value,
            "state_history": [s.value for s in self.state_history],
            "timestamp_start": self.timestamp_start.isoformat(),
            "timestamp_end": self.timestamp_end.isoformat() if self.timestamp_end else None,
            "transcript_url": self.transcript_url,
            "media_urls": list(self.media_urls),
            "pleasure_vector": self.pleasure_vector.to_dict() if self.pleasure_vector else None,
            "notes": self.notes,
            "embedding_id": self.embedding_id,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Session":
        vector_payload = payload.get("pleasure_vector")
        start = _parse_ts(payload.get("timestamp_start")) or datetime.now(timezone.utc)
        return cls(
            id=payload.get("id"),
            user_id=str(payload.get("user_id") or ""),
            state=_safe_state(payload.get("state")),
            state_history=[_safe_state(s) for s in payload.get("state_history") or []],
            timestamp_start=start,
            timestamp_end=_parse_ts(payload.get("timestamp_end")),
            transcript_url=payload.get("transcript_url"),
            media_urls=list(payload.get("media_urls") or []),
            pleasure_vector=(
                PleasureVector.from_dict(vector_payload) if isinstance(vector_payload, Mapping) else None
            ),
            notes=payload.get("notes"),
            embedding_id=payload.get("embedding_id"),
        )


__all__ = ["Session", "SessionState"]
