"""Continuations that finish a login or logout workflow.

``complete_auth`` and ``complete_logout`` are called once a workflow is done,
either directly after a synchronous ``authenticate``/``logout`` or from a
later request that reloaded the suspended state. They never return: the
persisted copy of the state is deleted, then the completion handler named in
the state takes over by raising ``HandlerTakeover``. Exceptions raised here
must not be caught by generic code; they belong to the top-level handler.
"""

from __future__ import annotations

import logging
from typing import NoReturn

from idbroker.sdk.auth.context import RequestContext
from idbroker.sdk.auth.errors import CompletionHandlerReturnedError, ContractViolationError
from idbroker.sdk.auth.handlers import HandlerKind
from idbroker.sdk.auth.source import AuthSource
from idbroker.sdk.auth.state import Suspension, WorkflowState

logger = logging.getLogger(__name__)


def complete_auth(state: WorkflowState, context: RequestContext) -> NoReturn:
    """Complete authentication and hand control to the login completion handler."""
    _complete(state, context, HandlerKind.LOGIN_COMPLETED, state.login_completed_handler)


def complete_logout(state: WorkflowState, context: RequestContext) -> NoReturn:
    """Complete logout and hand control to the logout completion handler."""
    _complete(state, context, HandlerKind.LOGOUT_COMPLETED, state.logout_completed_handler)


def start_login(source: AuthSource, state: WorkflowState, context: RequestContext) -> Suspension:
    """Start a login with ``source``.

    Returns the suspension when the source needs a redirect. A source that
    finishes synchronously goes straight to :func:`complete_auth`, which does
    not return.
    """
    if state.login_completed_handler is None:
        raise ContractViolationError("Workflow state has no LoginCompletedHandler")
    state.auth_id = source.auth_id

    suspension = source.authenticate(state, context)
    if suspension is not None:
        return suspension

    if state.attributes is None:
        raise ContractViolationError(
            f"Source '{source.auth_id}' returned from authenticate without user attributes"
        )
    logger.info(f"Source '{source.auth_id}' authenticated user synchronously")
    complete_auth(state, context)


def start_logout(source: AuthSource, state: WorkflowState, context: RequestContext) -> Suspension:
    """Start a logout with ``source``; the logout counterpart of :func:`start_login`."""
    if state.logout_completed_handler is None:
        raise ContractViolationError("Workflow state has no LogoutCompletedHandler")
    state.auth_id = source.auth_id

    suspension = source.logout(state, context)
    if suspension is not None:
        return suspension

    logger.info(f"Source '{source.auth_id}' logged out synchronously")
    complete_logout(state, context)


def _complete(
    state: WorkflowState,
    context: RequestContext,
    kind: HandlerKind,
    handler_name: str | None,
) -> NoReturn:
    if handler_name is None:
        raise ContractViolationError(f"Workflow state has no {kind.value}")

    # Delete first so a persisted workflow can be resumed at most once.
    context.state_store.delete(state)

    handler = context.handlers.get_completion_handler(kind, handler_name)
    logger.debug(f"Invoking {kind.value} '{handler_name}'")
    handler(state)

    logger.error(f"{kind.value} '{handler_name}' returned instead of taking over control flow")
    raise CompletionHandlerReturnedError(handler_name, kind.value)


__all__ = ["complete_auth", "complete_logout", "start_login", "start_logout"]
