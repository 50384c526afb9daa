"""Workflow state persistence for suspended login and logout workflows."""

from __future__ import annotations

import logging
import secrets
import sqlite3
import threading
import time
from pathlib import Path
from typing import Protocol, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken

from idbroker.sdk.auth.errors import StateStageMismatchError
from idbroker.sdk.auth.state import WorkflowState

logger = logging.getLogger(__name__)

DEFAULT_STATE_TIMEOUT = 3600


@runtime_checkable
class StateStore(Protocol):
    """Abstract interface for workflow state persistence.

    Backends must ensure:
    - ``save`` assigns ``state.id`` (reusing an existing id) and records ``stage``.
    - ``load`` returns None for unknown or expired ids and rejects a stage mismatch.
    - ``delete`` is idempotent.
    """

    def save(self, state: WorkflowState, stage: str) -> str: ...

    def load(self, state_id: str, stage: str | None = None) -> WorkflowState | None: ...

    def delete(self, state: WorkflowState) -> None: ...

    def delete_by_id(self, state_id: str) -> None: ...

    def cleanup_expired(self) -> int: ...


def new_state_id() -> str:
    """Return a fresh, unguessable state identifier."""
    return "_" + secrets.token_hex(20)


def _prepare_for_save(state: WorkflowState, stage: str) -> str:
    if state.id is None:
        state.id = new_state_id()
    state.stage = stage
    return state.id


def _check_stage(state: WorkflowState, state_id: str, stage: str | None) -> WorkflowState:
    if stage is not None and state.stage != stage:
        raise StateStageMismatchError(state_id, stage, state.stage)
    return state


class InMemoryStateStore(StateStore):
    """Process-local StateStore, suitable for tests and single-process hosts."""

    def __init__(self, timeout: int = DEFAULT_STATE_TIMEOUT):
        self.timeout = timeout
        # state_id -> (serialized state, expires_at)
        self._states: dict[str, tuple[str, float]] = {}
        self._lock = threading.RLock()

    def save(self, state: WorkflowState, stage: str) -> str:
        state_id = _prepare_for_save(state, stage)
        with self._lock:
            self._states[state_id] = (state.model_dump_json(), time.time() + self.timeout)
        logger.debug(f"Saved state {state_id[:8]}... at stage {stage}")
        return state_id

    def load(self, state_id: str, stage: str | None = None) -> WorkflowState | None:
        with self._lock:
            entry = self._states.get(state_id)
            if entry is None:
                return None
            payload, expires_at = entry
            if time.time() > expires_at:
                self._states.pop(state_id, None)
                logger.warning(f"State expired: {state_id[:8]}...")
                return None
        return _check_stage(WorkflowState.model_validate_json(payload), state_id, stage)

    def delete(self, state: WorkflowState) -> None:
        if state.id is None:
            return
        self.delete_by_id(state.id)

    def delete_by_id(self, state_id: str) -> None:
        with self._lock:
            self._states.pop(state_id, None)

    def cleanup_expired(self) -> int:
        now = time.time()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._states.items() if now > expires_at]
            for key in expired:
                self._states.pop(key, None)
        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired states")
        return len(expired)


class SqliteStateStore(StateStore):
    """SQLite-backed StateStore with optional Fernet encryption of payloads."""

    def __init__(
        self,
        db_path: Path,
        encryption_key: str | bytes | None = None,
        *,
        timeout: int = DEFAULT_STATE_TIMEOUT,
        allow_plaintext: bool = False,
    ) -> None:
        self.db_path = db_path
        self.timeout = timeout
        self.allow_plaintext = allow_plaintext
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._fernet = self._build_fernet(encryption_key) if encryption_key else None
        if not self._fernet and self.allow_plaintext:
            logger.warning(
                "Storing workflow state in plaintext because allow_plaintext=True and no "
                "encryption key was provided. This disables at-rest protection."
            )

    def initialize(self) -> None:
        with self._lock:
            if self._conn is not None:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS workflow_states (
                    state_id TEXT PRIMARY KEY,
                    stage TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    expires_at REAL NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def save(self, state: WorkflowState, stage: str) -> str:
        state_id = _prepare_for_save(state, stage)
        now = time.time()
        payload = {
            "state_id": state_id,
            "stage": stage,
            "payload": self._encrypt(state.model_dump_json()),
            "expires_at": now + self.timeout,
            "created_at": now,
        }
        with self._lock:
            conn = self._connection()
            conn.execute(
                """
                INSERT OR REPLACE INTO workflow_states
                (state_id, stage, payload, expires_at, created_at)
                VALUES (:state_id, :stage, :payload, :expires_at, :created_at)
                """,
                payload,
            )
            conn.commit()
        logger.debug(f"Saved state {state_id[:8]}... at stage {stage}")
        return state_id

    def load(self, state_id: str, stage: str | None = None) -> WorkflowState | None:
        with self._lock:
            conn = self._connection()
            row = conn.execute(
                "SELECT * FROM workflow_states WHERE state_id = ?", (state_id,)
            ).fetchone()
            if not row:
                return None

            if row["expires_at"] < time.time():
                conn.execute("DELETE FROM workflow_states WHERE state_id = ?", (state_id,))
                conn.commit()
                logger.warning(f"State expired: {state_id[:8]}...")
                return None

            state = WorkflowState.model_validate_json(self._decrypt(row["payload"]))
        return _check_stage(state, state_id, stage)

    def delete(self, state: WorkflowState) -> None:
        if state.id is None:
            return
        self.delete_by_id(state.id)

    def delete_by_id(self, state_id: str) -> None:
        with self._lock:
            conn = self._connection()
            conn.execute("DELETE FROM workflow_states WHERE state_id = ?", (state_id,))
            conn.commit()

    def cleanup_expired(self) -> int:
        with self._lock:
            conn = self._connection()
            cur = conn.execute("DELETE FROM workflow_states WHERE expires_at < ?", (time.time(),))
            conn.commit()
        if cur.rowcount:
            logger.info(f"Cleaned up {cur.rowcount} expired states")
        return cur.rowcount

    # ── Utility helpers ────────────────────────────────────────────────────────
    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self.initialize()
        assert self._conn is not None
        return self._conn

    def _build_fernet(self, encryption_key: str | bytes) -> Fernet:
        """Normalize and validate a Fernet key (accepts bytes or str)."""
        key_bytes = (
            encryption_key.encode("utf-8") if isinstance(encryption_key, str) else encryption_key
        )
        try:
            return Fernet(key_bytes)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                "Invalid Fernet key: expected urlsafe base64-encoded 32-byte value. "
                "Pass the raw bytes from Fernet.generate_key() or the same value as a string."
            ) from exc

    def _encrypt(self, value: str) -> str:
        if self._fernet:
            return self._fernet.encrypt(value.encode("utf-8")).decode("utf-8")
        if not self.allow_plaintext:
            raise ValueError(
                "State encryption key is required; set allow_plaintext=True to store "
                "workflow state in plaintext."
            )
        return value

    def _decrypt(self, value: str) -> str:
        if self._fernet:
            try:
                return self._fernet.decrypt(value.encode("utf-8")).decode("utf-8")
            except InvalidToken as exc:
                raise ValueError("Failed to decrypt stored workflow state") from exc
        if not self.allow_plaintext:
            raise ValueError(
                "State encryption key is required to decrypt stored workflow state; "
                "plaintext state is disabled."
            )
        return value


__all__ = [
    "DEFAULT_STATE_TIMEOUT",
    "InMemoryStateStore",
    "SqliteStateStore",
    "StateStore",
    "new_state_id",
]
