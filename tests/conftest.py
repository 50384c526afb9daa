"""
Global pytest configuration and fixtures.
"""

from pathlib import Path
from typing import Any, NoReturn

import pytest
from cryptography.fernet import Fernet

from idbroker.sdk.auth import (
    HandlerRegistry,
    HandlerTakeover,
    InMemorySessionStore,
    InMemoryStateStore,
    RequestContext,
    SqliteStateStore,
    StateStore,
    WorkflowState,
)

LOGIN_DONE = "test.login_done"
LOGOUT_DONE = "test.logout_done"
SSO_LOGOUT = "test.sso_logout"


def _memory_store_factory(tmp_path: Path) -> StateStore:
    return InMemoryStateStore()


def _sqlite_store_factory(tmp_path: Path) -> StateStore:
    store = SqliteStateStore(tmp_path / "state.db", encryption_key=Fernet.generate_key())
    store.initialize()
    return store


@pytest.fixture(params=[_memory_store_factory, _sqlite_store_factory], ids=["memory", "sqlite"])
def state_store(request, tmp_path):
    """Parametrized state store fixture to exercise all backends uniformly."""
    store: StateStore = request.param(tmp_path)
    yield store
    if isinstance(store, SqliteStateStore):
        store.close()


@pytest.fixture
def logout_calls() -> list[dict[str, Any]]:
    return []


@pytest.fixture
def handlers(logout_calls) -> HandlerRegistry:
    registry = HandlerRegistry()

    @registry.login_completed(LOGIN_DONE)
    def login_done(state: WorkflowState) -> NoReturn:
        raise HandlerTakeover(("login", state))

    @registry.logout_completed(LOGOUT_DONE)
    def logout_done(state: WorkflowState) -> NoReturn:
        raise HandlerTakeover(("logout", state))

    @registry.logout_callback(SSO_LOGOUT)
    def sso_logout(callback_state: dict[str, Any]) -> None:
        logout_calls.append(callback_state)

    return registry


@pytest.fixture
def session() -> InMemorySessionStore:
    return InMemorySessionStore("session-1")


@pytest.fixture
def context(state_store, session, handlers) -> RequestContext:
    return RequestContext(state_store=state_store, session=session, handlers=handlers)
