"""Reference session stores implementing the async storage contract."""

from __future__ import annotations

import copy
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from grain_core.models.session import Session, SessionState

from .vector_space import find_similar

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySessionStore:
    """Simple in-memory implementation for tests and local runs.

    Records are copied on the way in and out so callers never share mutable
    state with stored history.
    """

    def __init__(self, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or _utc_now
        self._sessions: Dict[str, Session] = {}
        self._lock = Lock()

    async def create_session(self, user_id: str) -> Session:
        session = Session(
            user_id=user_id,
            id=uuid.uuid4().hex,
            state=SessionState.IDLE,
            timestamp_start=self._clock(),
        )
        self._put(session)
        return copy.deepcopy(session)

    async def update_session(self, session: Session) -> None:
        if not session.id:
            raise ValueError("session.id is required for update")
        self._put(session)

    async def fetch_sessions(self, user_id: str, limit: int = 50) -> List[Session]:
        with self._lock:
            rows = [s for s in self._sessions.values() if s.user_id == user_id]
        rows.sort(key=lambda s: s.timestamp_start, reverse=True)
        return [copy.deepcopy(s) for s in rows[: max(0, int(limit))]]

    async def find_neighbors(self, embedding: Sequence[float], limit: int = 10) -> List[Session]:
        with self._lock:
            rows = list(self._sessions.values())
        return [copy.deepcopy(s) for s in find_similar(embedding, rows, k=limit)]

    def add(self, sessions: Iterable[Session]) -> None:
        """Seed historical sessions directly (synchronous helper)."""

        for session in sessions:
            if not session.id:
                session.id = uuid.uuid4().hex
            self._put(session)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _put(self, session: Session) -> None:
        with self._lock:
            self._sessions[str(session.id)] = copy.deepcopy(session)


class JsonlSessionStore(InMemorySessionStore):
    """Append-only JSONL persistence; the last record per id wins on load."""

    def __init__(self, path: Path | str, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        super().__init__(clock=clock)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        for session in load_sessions_jsonl(self.path):
            super()._put(session)

    def _put(self, session: Session) -> None:
        super()._put(session)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(session.to_dict(), ensure_ascii=False) + "\n")


def load_sessions_jsonl(path: Path | str) -> List[Session]:
    """Read a JSONL session dump, keeping the last row for each id."""

    target = Path(path)
    if not target.exists():
        return []
    latest: Dict[str, Session] = {}
    anonymous: List[Session] = []
    with target.open("r", encoding="utf-8") as handle:
        for lineno, line in enumerate(handle, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
                session = Session.from_dict(payload)
            except (json.JSONDecodeError, AttributeError, TypeError, ValueError):
                logger.warning("skipping malformed session row %s:%d", target, lineno)
                continue
            if session.id:
                latest[session.id] = session
            else:
                anonymous.append(session)
    return list(latest.values()) + anonymous


__all__ = ["InMemorySessionStore", "JsonlSessionStore", "load_sessions_jsonl"]
