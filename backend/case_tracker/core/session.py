"""
Session refresh guard for hosted-database calls.

The only automatic retry in the service: when a database call fails with an
authentication error, refresh the auth session once and re-run the call.
Refreshes are rate limited (cooldown) and stop entirely after repeated
failures (circuit breaker).
"""

import logging
import threading
import time
from typing import Any, Callable, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

AUTH_ERROR_CODES = {"PGRST301", "PGRST302", "401"}
AUTH_ERROR_MARKERS = (
    "jwt expired",
    "invalid jwt",
    "invalid token",
    "not authenticated",
)


class AuthSession(Protocol):
    """Anything that can refresh a hosted-auth session (e.g. ``client.auth``)."""

    def refresh_session(self) -> Any: ...


def is_auth_error(error: BaseException) -> bool:
    """True if a hosted call failed because the session token is stale."""
    code = str(getattr(error, "code", "") or "")
    if code in AUTH_ERROR_CODES:
        return True

    status_code = getattr(error, "status", None) or getattr(error, "status_code", None)
    response = getattr(error, "response", None)
    if status_code is None and response is not None:
        status_code = getattr(response, "status_code", None)
    if status_code == 401:
        return True

    message = str(getattr(error, "message", "") or error).lower()
    return any(marker in message for marker in AUTH_ERROR_MARKERS)


class SessionRefresher:
    """Bounded session refresh with cooldown and circuit breaker."""

    def __init__(
        self,
        session: AuthSession,
        cooldown_seconds: float = 10.0,
        max_failures: int = 3,
        retry_delay_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.cooldown_seconds = cooldown_seconds
        self.max_failures = max_failures
        self.retry_delay_seconds = retry_delay_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._last_attempt: float | None = None
        self.failure_count = 0

    @property
    def circuit_open(self) -> bool:
        return self.failure_count >= self.max_failures

    def refresh(self) -> bool:
        """Try to refresh the session. Returns True when a fresh session exists."""
        with self._lock:
            now = self._clock()
            if self._last_attempt is not None and now - self._last_attempt < self.cooldown_seconds:
                logger.warning("Session refresh skipped: still in cooldown period")
                return False

            if self.circuit_open:
                logger.error(
                    f"Session refresh circuit open after {self.failure_count} failures, not retrying"
                )
                return False

            self._last_attempt = now
            try:
                result = self.session.refresh_session()
            except Exception as e:
                self.failure_count += 1
                logger.error(f"Session refresh failed ({self.failure_count}/{self.max_failures}): {e}")
                return False

            if not getattr(result, "session", None):
                self.failure_count += 1
                logger.error(f"Session refresh returned no session ({self.failure_count}/{self.max_failures})")
                return False

            self.failure_count = 0
            logger.info("Session refreshed")
            return True


def with_session_refresh(
    refresher: SessionRefresher | None,
    call: Callable[[], T],
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``call``; on an auth failure refresh the session and run it once more.

    Non-auth errors, a refused refresh, or a missing refresher re-raise the
    original error unchanged.
    """
    try:
        return call()
    except Exception as e:
        if refresher is None or not is_auth_error(e):
            raise
        logger.warning(f"Auth error on database call, refreshing session: {e}")
        if not refresher.refresh():
            raise
        sleep(refresher.retry_delay_seconds)
        return call()
