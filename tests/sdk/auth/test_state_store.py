import sqlite3
import time
from pathlib import Path

import pytest
from cryptography.fernet import Fernet

from idbroker.sdk.auth import (
    InMemoryStateStore,
    SqliteStateStore,
    StateStageMismatchError,
    StateStore,
    WorkflowState,
)


def test_save_assigns_id_and_stage(state_store: StateStore) -> None:
    """Saving assigns an id and records the stage."""
    state = WorkflowState(login_completed_handler="h", data={"return_to": "/home"})

    state_id = state_store.save(state, "stage-1")

    assert state.id == state_id
    assert state.stage == "stage-1"
    loaded = state_store.load(state_id, "stage-1")
    assert loaded == state


def test_save_reuses_existing_id(state_store: StateStore) -> None:
    """Saving a state again keeps its id."""
    state = WorkflowState()
    first = state_store.save(state, "stage-1")
    second = state_store.save(state, "stage-2")

    assert first == second
    loaded = state_store.load(first)
    assert loaded is not None
    assert loaded.stage == "stage-2"


def test_load_unknown_returns_none(state_store: StateStore) -> None:
    """Loading an unknown id returns None."""
    assert state_store.load("_does-not-exist") is None


def test_stage_mismatch_raises(state_store: StateStore) -> None:
    """Loading under a different stage raises."""
    state_id = state_store.save(WorkflowState(), "stage-1")
    with pytest.raises(StateStageMismatchError) as exc_info:
        state_store.load(state_id, "stage-2")
    assert exc_info.value.expected == "stage-2"
    assert exc_info.value.actual == "stage-1"


def test_delete_is_idempotent(state_store: StateStore) -> None:
    """Deleting twice is harmless."""
    state = WorkflowState()
    state_id = state_store.save(state, "stage-1")

    state_store.delete(state)
    state_store.delete(state)
    state_store.delete(WorkflowState())

    assert state_store.load(state_id) is None


def test_memory_store_expiry() -> None:
    """Expired states are not returned."""
    store = InMemoryStateStore(timeout=0)
    state_id = store.save(WorkflowState(), "stage-1")
    time.sleep(0.01)

    assert store.load(state_id) is None


def test_cleanup_expired_counts_removed_states(tmp_path: Path) -> None:
    """cleanup_expired reports how many states it removed."""
    store = SqliteStateStore(tmp_path / "state.db", Fernet.generate_key(), timeout=0)
    store.initialize()
    store.save(WorkflowState(), "stage-1")
    store.save(WorkflowState(), "stage-1")
    time.sleep(0.01)

    assert store.cleanup_expired() == 2
    assert store.cleanup_expired() == 0
    store.close()


def test_sqlite_payload_is_encrypted(tmp_path: Path) -> None:
    """Persisted payloads are not readable without the key."""
    db_path = tmp_path / "state.db"
    store = SqliteStateStore(db_path, Fernet.generate_key())
    store.initialize()
    state_id = store.save(WorkflowState(data={"secret": "hunter2"}), "stage-1")
    store.close()

    conn = sqlite3.connect(db_path)
    try:
        (payload,) = conn.execute(
            "SELECT payload FROM workflow_states WHERE state_id = ?", (state_id,)
        ).fetchone()
    finally:
        conn.close()
    assert "hunter2" not in payload


def test_sqlite_state_survives_reopen(tmp_path: Path) -> None:
    """Suspended state written by one process can be resumed by another."""
    key = Fernet.generate_key()
    writer = SqliteStateStore(tmp_path / "state.db", key)
    state_id = writer.save(WorkflowState(login_completed_handler="h"), "stage-1")
    writer.close()

    reader = SqliteStateStore(tmp_path / "state.db", key)
    loaded = reader.load(state_id, "stage-1")
    reader.close()

    assert loaded is not None
    assert loaded.login_completed_handler == "h"


def test_sqlite_requires_key_unless_plaintext_allowed(tmp_path: Path) -> None:
    """Saving without a key fails unless plaintext is allowed."""
    store = SqliteStateStore(tmp_path / "state.db")
    with pytest.raises(ValueError, match="encryption key is required"):
        store.save(WorkflowState(), "stage-1")
    store.close()

    plaintext = SqliteStateStore(tmp_path / "plain.db", allow_plaintext=True)
    state_id = plaintext.save(WorkflowState(), "stage-1")
    assert plaintext.load(state_id) is not None
    plaintext.close()


def test_invalid_fernet_key(tmp_path: Path) -> None:
    """A malformed Fernet key is rejected."""
    with pytest.raises(ValueError, match="Invalid Fernet key"):
        SqliteStateStore(tmp_path / "state.db", "not-a-key")
