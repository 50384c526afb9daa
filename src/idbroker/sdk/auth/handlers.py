"""Named completion handlers and logout callbacks.

Workflow state is persisted between requests, so it cannot carry live
callables. Instead it carries names, and the host registers the callables
behind those names once at startup::

    handlers = HandlerRegistry()

    @handlers.login_completed("web.login_done")
    def login_done(state: WorkflowState) -> NoReturn:
        raise HandlerTakeover(redirect_to(state.data["return_to"]))

    @handlers.logout_callback("web.sso_logout")
    def sso_logout(callback_state: dict[str, Any]) -> None:
        sessions.invalidate(callback_state["sid"])
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, NoReturn

from idbroker.sdk.auth.errors import ContractViolationError
from idbroker.sdk.auth.state import WorkflowState

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[WorkflowState], NoReturn]
LogoutCallback = Callable[[dict[str, Any]], None]


class HandlerKind(str, Enum):
    """The closed set of callable kinds a workflow may reference."""

    LOGIN_COMPLETED = "LoginCompletedHandler"
    LOGOUT_COMPLETED = "LogoutCompletedHandler"
    LOGOUT_CALLBACK = "LogoutCallback"


class HandlerRegistry:
    """Typed name → callable maps for every handler kind."""

    def __init__(self) -> None:
        self._completion: dict[HandlerKind, dict[str, CompletionHandler]] = {
            HandlerKind.LOGIN_COMPLETED: {},
            HandlerKind.LOGOUT_COMPLETED: {},
        }
        self._logout_callbacks: dict[str, LogoutCallback] = {}

    # ── Registration ───────────────────────────────────────────────────────────
    def add_login_completed(self, name: str, handler: CompletionHandler) -> None:
        kind = HandlerKind.LOGIN_COMPLETED
        self._add(self._completion[kind], kind, name, handler)

    def add_logout_completed(self, name: str, handler: CompletionHandler) -> None:
        kind = HandlerKind.LOGOUT_COMPLETED
        self._add(self._completion[kind], kind, name, handler)

    def add_logout_callback(self, name: str, callback: LogoutCallback) -> None:
        self._add(self._logout_callbacks, HandlerKind.LOGOUT_CALLBACK, name, callback)

    def login_completed(self, name: str) -> Callable[[CompletionHandler], CompletionHandler]:
        """Decorator form of :meth:`add_login_completed`."""

        def decorator(handler: CompletionHandler) -> CompletionHandler:
            self.add_login_completed(name, handler)
            return handler

        return decorator

    def logout_completed(self, name: str) -> Callable[[CompletionHandler], CompletionHandler]:
        """Decorator form of :meth:`add_logout_completed`."""

        def decorator(handler: CompletionHandler) -> CompletionHandler:
            self.add_logout_completed(name, handler)
            return handler

        return decorator

    def logout_callback(self, name: str) -> Callable[[LogoutCallback], LogoutCallback]:
        """Decorator form of :meth:`add_logout_callback`."""

        def decorator(callback: LogoutCallback) -> LogoutCallback:
            self.add_logout_callback(name, callback)
            return callback

        return decorator

    # ── Lookup ─────────────────────────────────────────────────────────────────
    def get_completion_handler(self, kind: HandlerKind, name: str) -> CompletionHandler:
        """Return the completion handler registered under ``name``.

        Raises:
            ContractViolationError: If nothing is registered under ``name``.
        """
        handlers = self._completion.get(kind)
        if handlers is None:
            raise ValueError(f"{kind.value} is not a completion handler kind")
        try:
            return handlers[name]
        except KeyError:
            raise ContractViolationError(f"No {kind.value} registered as '{name}'") from None

    def get_logout_callback(self, name: str) -> LogoutCallback:
        try:
            return self._logout_callbacks[name]
        except KeyError:
            raise ContractViolationError(
                f"No {HandlerKind.LOGOUT_CALLBACK.value} registered as '{name}'"
            ) from None

    def has_logout_callback(self, name: str) -> bool:
        return name in self._logout_callbacks

    @staticmethod
    def _add(
        target: dict[str, Any], kind: HandlerKind, name: str, handler: Callable[..., Any]
    ) -> None:
        if not name:
            raise ValueError("Handler name must be a non-empty string")
        if name in target and target[name] is not handler:
            raise ValueError(f"{kind.value} '{name}' is already registered")
        target[name] = handler
        logger.debug(f"Registered {kind.value} '{name}'")


__all__ = [
    "CompletionHandler",
    "HandlerKind",
    "HandlerRegistry",
    "LogoutCallback",
]
