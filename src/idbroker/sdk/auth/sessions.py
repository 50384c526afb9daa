"""Per-user session data storage with per-entry expiration.

A session store holds namespaced key/value data for one user session. Every
entry carries its own expiry, chosen through a timeout class at write time,
so short-lived bookkeeping (such as logout callback registrations) can
outlive or expire before the session itself.
"""

import copy
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_DATA_TIMEOUT = 4 * 60 * 60
DEFAULT_LOGOUT_TIMEOUT = 8 * 60 * 60


class DataTimeout(str, Enum):
    """Named timeout classes for session data entries."""

    DEFAULT = "default"
    LOGOUT = "logout"


@runtime_checkable
class SessionStore(Protocol):
    """Namespaced key/value storage scoped to one user session.

    Implementations must provide atomic per-key get/set; cross-key ordering
    is not guaranteed.
    """

    def set_data(
        self, namespace: str, key: str, value: Any, timeout: DataTimeout | int = DataTimeout.DEFAULT
    ) -> None: ...

    def get_data(self, namespace: str, key: str) -> Any | None: ...

    def delete_data(self, namespace: str, key: str) -> None: ...

    def cleanup_expired(self) -> int: ...


@dataclass
class SessionDataEntry:
    """A stored value and the time it stops being visible."""

    value: Any
    expires_at: float

    def is_expired(self) -> bool:
        return time.time() > self.expires_at


class InMemorySessionStore(SessionStore):
    """Session data held in process memory.

    Attributes:
        session_id: Identifier of the user session this store belongs to.
        data_timeout: Lifetime in seconds of ``DataTimeout.DEFAULT`` entries.
        logout_timeout: Lifetime in seconds of ``DataTimeout.LOGOUT`` entries.
    """

    def __init__(
        self,
        session_id: str = "default",
        *,
        data_timeout: int = DEFAULT_DATA_TIMEOUT,
        logout_timeout: int = DEFAULT_LOGOUT_TIMEOUT,
    ):
        self.session_id = session_id
        self.data_timeout = data_timeout
        self.logout_timeout = logout_timeout
        self._data: dict[str, dict[str, SessionDataEntry]] = {}
        self._lock = threading.RLock()

    def resolve_timeout(self, timeout: DataTimeout | int) -> int:
        """Translate a timeout class (or explicit seconds) into seconds."""
        if timeout == DataTimeout.LOGOUT:
            return self.logout_timeout
        if timeout == DataTimeout.DEFAULT:
            return self.data_timeout
        if isinstance(timeout, int) and timeout >= 0:
            return timeout
        raise ValueError(f"Invalid session data timeout: {timeout!r}")

    def set_data(
        self, namespace: str, key: str, value: Any, timeout: DataTimeout | int = DataTimeout.DEFAULT
    ) -> None:
        expires_at = time.time() + self.resolve_timeout(timeout)
        entry = SessionDataEntry(value=copy.deepcopy(value), expires_at=expires_at)
        with self._lock:
            self._data.setdefault(namespace, {})[key] = entry
        logger.debug(f"Stored session data {namespace}/{key[:16]} in session {self.session_id[:8]}")

    def get_data(self, namespace: str, key: str) -> Any | None:
        with self._lock:
            entries = self._data.get(namespace)
            if not entries:
                return None
            entry = entries.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                entries.pop(key, None)
                return None
            return copy.deepcopy(entry.value)

    def delete_data(self, namespace: str, key: str) -> None:
        with self._lock:
            entries = self._data.get(namespace)
            if entries:
                entries.pop(key, None)

    def cleanup_expired(self) -> int:
        """Remove expired entries in every namespace.

        Returns:
            Number of entries removed.
        """
        removed = 0
        with self._lock:
            for entries in self._data.values():
                expired = [key for key, entry in entries.items() if entry.is_expired()]
                for key in expired:
                    entries.pop(key, None)
                removed += len(expired)

        if removed:
            logger.debug(f"Cleaned up {removed} expired session entries")
        return removed


__all__ = [
    "DEFAULT_DATA_TIMEOUT",
    "DEFAULT_LOGOUT_TIMEOUT",
    "DataTimeout",
    "InMemorySessionStore",
    "SessionDataEntry",
    "SessionStore",
]
