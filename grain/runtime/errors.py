from __future__ import annotations

from grain_core.models.session import SessionState


class SessionLifecycleError(RuntimeError):
    """Base class for recoverable state-machine failures."""


class InvalidTransition(SessionLifecycleError):
    def __init__(self, from_state: SessionState, to_state: SessionState) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Cannot transition from {from_state.display_name} to {to_state.display_name}"
        )


class SessionAlreadyActive(SessionLifecycleError):
    def __init__(self, message: str = "A session is already active") -> None:
        super().__init__(message)


class NoActiveSession(SessionLifecycleError):
    def __init__(self, message: str = "No active session") -> None:
        super().__init__(message)


__all__ = [
    "SessionLifecycleError",
    "InvalidTransition",
    "SessionAlreadyActive",
    "NoActiveSession",
]
