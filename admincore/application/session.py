from __future__ import annotations

from admincore.core.errors import AuthError
from admincore.infrastructure.collaborators import SessionTerminator
from admincore.utils.logger import get_logger

logger = get_logger(__name__)


class SessionGuard:
    """Invokes the external logout hook once per console session."""

    def __init__(self, on_terminate: SessionTerminator | None = None) -> None:
        self._on_terminate = on_terminate
        self.terminated = False
        self.reason: str | None = None

    def terminate(self, reason: str) -> None:
        if self.terminated:
            return
        self.terminated = True
        self.reason = reason
        logger.warning("Session terminated: %s", reason)
        if self._on_terminate is not None:
            self._on_terminate()

    def check(self, exc: BaseException) -> bool:
        """Terminate the session when ``exc`` is an authentication failure."""

        if isinstance(exc, AuthError):
            self.terminate(exc.message)
            return True
        return False
