"""idbroker SDK Authentication - authentication source lifecycle.

This package provides:
- `AuthSource`: base class for pluggable authentication sources
- Suspend/resume of login and logout workflows across requests
- Logout callback registration for single sign-out
- Storage contracts and reference stores for workflow and session data

## Quick Example

```python
from idbroker.sdk.auth import (
    HandlerRegistry, HandlerTakeover, InMemorySessionStore, InMemoryStateStore,
    RequestContext, WorkflowState, get_by_id, start_login,
)

handlers = HandlerRegistry()

@handlers.login_completed("app.login_done")
def login_done(state):
    raise HandlerTakeover({"user": state.attributes})

context = RequestContext(InMemoryStateStore(), InMemorySessionStore(), handlers)
source = get_by_id("admin", {"admin": ["static", {"attributes": {"uid": "admin"}}]})
try:
    suspension = start_login(source, WorkflowState(login_completed_handler="app.login_done"), context)
except HandlerTakeover as done:
    print(done.result)
```
"""

from .context import RequestContext
from .coordinator import complete_auth, complete_logout, start_login, start_logout
from .errors import (
    AuthSourceError,
    CompletionHandlerReturnedError,
    ConfigurationError,
    ContractViolationError,
    HandlerTakeover,
    StateError,
    StateStageMismatchError,
)
from .handlers import HandlerKind, HandlerRegistry
from .registry import SourceRegistry, default_registry, get_by_id
from .sessions import DataTimeout, InMemorySessionStore, SessionStore
from .source import AuthSource, LogoutCallbackEntry, SourceInfo, logout_callback_key
from .state import Suspension, WorkflowState
from .storage import InMemoryStateStore, SqliteStateStore, StateStore

__all__ = [
    "AuthSource",
    "AuthSourceError",
    "CompletionHandlerReturnedError",
    "ConfigurationError",
    "ContractViolationError",
    "DataTimeout",
    "HandlerKind",
    "HandlerRegistry",
    "HandlerTakeover",
    "InMemorySessionStore",
    "InMemoryStateStore",
    "LogoutCallbackEntry",
    "RequestContext",
    "SessionStore",
    "SourceInfo",
    "SourceRegistry",
    "SqliteStateStore",
    "StateError",
    "StateStageMismatchError",
    "StateStore",
    "Suspension",
    "WorkflowState",
    "complete_auth",
    "complete_logout",
    "default_registry",
    "get_by_id",
    "logout_callback_key",
    "start_login",
    "start_logout",
]
