"""Session lifecycle state machine: idle -> drift <-> mastery <-> social_sync -> reflection -> idle."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple

from grain_core.models.dimension import Dimension
from grain_core.models.pleasure import PleasureVector
from grain_core.models.session import Session, SessionState

from grain.memory.vector_space import VectorSpace
from grain.telemetry.trace_writer import append_trace_event

from .errors import InvalidTransition, NoActiveSession, SessionAlreadyActive

if TYPE_CHECKING:
    from grain.hub.contracts import SessionStore

logger = logging.getLogger(__name__)

PRIMARY_COUNT = 3
INTENSITY_STEP = 0.1
INTENSITY_FLOOR = 0.3


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def finalize_vector(
    dimensions: Sequence[Dimension],
    *,
    vector_space: Optional[VectorSpace] = None,
) -> PleasureVector:
    """Build the session vector from dimensions in activation order.

    The first three are primary, the rest secondary. Intensity at position
    ``i`` is ``max(0.3, 1.0 - i * 0.1)``; historical data depends on this
    exact rule.
    """

    ordered = list(dimensions)
    vector = PleasureVector()
    vector.primary = ordered[:PRIMARY_COUNT]
    vector.secondary = ordered[PRIMARY_COUNT:]
    for index, dim in enumerate(ordered):
        vector.intensities[dim] = max(INTENSITY_FLOOR, 1.0 - index * INTENSITY_STEP)
    vector.activated_dimensions = dict(vector.intensities)
    space = vector_space or VectorSpace()
    vector.embedding = [float(v) for v in space.embed(vector)]
    return vector


class SessionLifecycle:
    """Single-writer owner of one user's live session.

    Sync mutations (``transition``, ``activate_dimension`` ...) are serialised by
    a re-entrant lock; ``start_session``/``end_session`` are additionally
    serialised with each other by an asyncio lock because they await the store.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        vector_space: Optional[VectorSpace] = None,
        clock: Optional[Callable[[], datetime]] = None,
        trace_path: Path | str | None = None,
    ) -> None:
        self.store = store
        self.vector_space = vector_space or VectorSpace()
        self._clock = clock or _utc_now
        self._trace_path = Path(trace_path) if trace_path else None
        self._lock = RLock()
        self._lifecycle_lock = asyncio.Lock()
        self._state = SessionState.IDLE
        self._history: List[SessionState] = []
        self._session: Optional[Session] = None
        self._session_start: Optional[datetime] = None
        self._active: List[Dimension] = []

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def current_state(self) -> SessionState:
        return self._state

    @property
    def state_history(self) -> Tuple[SessionState, ...]:
        with self._lock:
            return tuple(self._history)

    @property
    def current_session(self) -> Optional[Session]:
        return self._session

    @property
    def active_dimensions(self) -> Tuple[Dimension, ...]:
        with self._lock:
            return tuple(self._active)

    @property
    def session_start(self) -> Optional[datetime]:
        return self._session_start

    @property
    def session_duration(self) -> float:
        start = self._session_start
        if start is None:
            return 0.0
        return (self._clock() - start).total_seconds()

    @property
    def is_session_active(self) -> bool:
        return self._state is not SessionState.IDLE

    @property
    def can_enter_mastery(self) -> bool:
        return self._state.can_transition(SessionState.MASTERY)

    @property
    def can_enter_social_sync(self) -> bool:
        return self._state.can_transition(SessionState.SOCIAL_SYNC)

    def require_session(self) -> Session:
        session = self._session
        if session is None:
            raise NoActiveSession()
        return session

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(self, target: SessionState) -> None:
        target = SessionState(target)
        with self._lock:
            source = self._state
            if not source.can_transition(target):
                raise InvalidTransition(source, target)
            self._history.append(source)
            self._state = target
            if self._session is not None:
                self._session.transition(target)
            if target is SessionState.DRIFT and self._session_start is None:
                self._session_start = self._clock()
            session_id = self._session.id if self._session is not None else None
            if target is SessionState.IDLE:
                self.reset()
        logger.debug("session transition %s -> %s (session=%s)", source.value, target.value, session_id)
        self._trace("transition", from_state=source.value, to_state=target.value, session_id=session_id)

    def reset(self) -> None:
        with self._lock:
            self._history.clear()
            self._session = None
            self._session_start = None
            self._active.clear()

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    async def start_session(self, user_id: str) -> Session:
        """Create a session record and move the machine into drift.

        If another trigger leaves idle while the store call is awaited,
        ``SessionAlreadyActive`` is raised and the machine is left as that
        trigger set it. The record the store already created is not removed;
        the storage contract has no delete, so it stays behind as an idle,
        vector-less session.
        """

        async with self._lifecycle_lock:
            if self._state is not SessionState.IDLE:
                raise SessionAlreadyActive()
            session = await self.store.create_session(user_id)
            with self._lock:
                # A sync trigger may have moved the machine while we awaited the store.
                if self._state is not SessionState.IDLE:
                    raise SessionAlreadyActive()
                self._session = session
                self._session_start = self._clock()
                self.transition(SessionState.DRIFT)
        logger.info("session started user=%s session=%s", user_id, session.id)
        self._trace("session_start", user_id=user_id, session_id=session.id)
        return session

    async def end_session(self) -> Optional[Session]:
        """Finalize, persist and return the ended session (``None`` when idle)."""

        async with self._lifecycle_lock:
            with self._lock:
                if self._state is SessionState.IDLE:
                    return None
                vector = finalize_vector(self._active, vector_space=self.vector_space)
                if self._state is not SessionState.REFLECTION:
                    self.transition(SessionState.REFLECTION)
                session = self._session
                if session is not None:
                    session.timestamp_end = self._clock()
                    session.pleasure_vector = vector
            if session is not None:
                await self.store.update_session(session)
            with self._lock:
                # Persisted record stays in reflection; detach before draining to idle.
                self._session = None
                # Another trigger may already have drained to idle during the write.
                if self._state is SessionState.REFLECTION:
                    self.transition(SessionState.IDLE)
        logger.info(
            "session ended session=%s dims=%s",
            session.id if session is not None else None,
            [d.value for d in vector.primary],
        )
        self._trace(
            "session_end",
            session_id=session.id if session is not None else None,
            primary=[d.value for d in vector.primary],
            secondary=[d.value for d in vector.secondary],
        )
        return session

    # ------------------------------------------------------------------
    # Dimension accumulation
    # ------------------------------------------------------------------

    def activate_dimension(self, dimension: Dimension | str) -> None:
        dim = Dimension.from_any(dimension)
        with self._lock:
            if dim not in self._active:
                self._active.append(dim)

    def deactivate_dimension(self, dimension: Dimension | str) -> None:
        dim = Dimension.from_any(dimension)
        with self._lock:
            self._active = [d for d in self._active if d is not dim]

    def preview_vector(self) -> PleasureVector:
        """Vector the current accumulator would finalize to."""

        with self._lock:
            return finalize_vector(self._active, vector_space=self.vector_space)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _trace(self, event: str, **fields: Any) -> None:
        if self._trace_path is None:
            return
        record: Dict[str, Any] = {"event": event, "ts": self._clock().isoformat()}
        record.update(fields)
        try:
            append_trace_event(self._trace_path, record)
        except OSError:
            logger.warning("lifecycle trace write failed: %s", self._trace_path, exc_info=True)


__all__ = [
    "SessionLifecycle",
    "finalize_vector",
    "PRIMARY_COUNT",
    "INTENSITY_STEP",
    "INTENSITY_FLOOR",
]
