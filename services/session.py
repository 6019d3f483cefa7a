"""Per-request user session and session change notifications.

A UserSession is built by the auth dependency for each request and passed to
handlers explicitly. Changes that a signed-in client cares about (profile edits,
unread notification count) are published on a SessionEvents hub that any
number of listeners can subscribe to.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class UserSession:
    user_id: str
    phone_number: Optional[str] = None
    profile: Optional[dict] = None

    @property
    def onboarded(self) -> bool:
        return self.profile is not None

    @property
    def display_name(self) -> str:
        if self.profile:
            return self.profile.get("display_name") or "Someone"
        return "Someone"


@dataclass(frozen=True)
class ProfileChanged:
    user_id: str


@dataclass(frozen=True)
class UnreadCountChanged:
    user_id: str
    count: int


SessionEvent = Union[ProfileChanged, UnreadCountChanged]


class SessionEvents:
    """Synchronous publish/subscribe hub for session events."""

    def __init__(self):
        self._subscribers: list[tuple[Optional[str], Callable[[Any], None]]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[SessionEvent], None], user_id: Optional[str] = None) -> Callable[[], None]:
        """Register a listener, optionally for one user only. Returns an unsubscribe function."""
        entry = (user_id, callback)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe():
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, event: SessionEvent):
        with self._lock:
            listeners = list(self._subscribers)
        for user_id, callback in listeners:
            if user_id is not None and user_id != event.user_id:
                continue
            try:
                callback(event)
            except Exception as e:
                # A broken listener must not fail the write that triggered it
                logger.error(f"Session listener failed for {type(event).__name__}: {e}", exc_info=True)

    def clear(self):
        with self._lock:
            self._subscribers.clear()


# Global instance
_session_events: Optional[SessionEvents] = None


def get_session_events() -> SessionEvents:
    """Get or create the global session event hub"""
    global _session_events
    if _session_events is None:
        _session_events = SessionEvents()
    return _session_events
