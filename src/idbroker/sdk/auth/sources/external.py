"""Authentication source delegating login and logout to an external page.

The login flow spans two requests::

    request 1: start_login(source, state)  -> Suspension(redirect_url=login_url?state=<id>)
    (user logs in at the external page, which redirects back with the state id)
    request 2: source.resume_login(state_id, attributes, context, session_index)
               -> complete_auth -> login completion handler

Logout works the same way through ``logout_url`` and :meth:`resume_logout`.
A logout initiated by the external party for a session index is delivered
through :meth:`handle_remote_logout`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, NoReturn

from pydantic import BaseModel, ConfigDict, ValidationError

from idbroker.sdk.auth.context import RequestContext
from idbroker.sdk.auth.coordinator import complete_auth, complete_logout
from idbroker.sdk.auth.errors import ConfigurationError, StateError
from idbroker.sdk.auth.registry import default_registry
from idbroker.sdk.auth.source import AuthSource, SourceInfo
from idbroker.sdk.auth.sources.static import normalize_attributes
from idbroker.sdk.auth.state import Suspension, WorkflowState

logger = logging.getLogger(__name__)

LOGIN_STAGE = "idbroker.external:login"
LOGOUT_STAGE = "idbroker.external:logout"


class ExternalSourceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    login_url: str
    logout_url: str | None = None
    state_param: str = "state"


@default_registry.register("external")
class ExternalRedirectSource(AuthSource):
    """Source whose login (and optionally logout) happens on an external page."""

    def __init__(self, info: SourceInfo, config: Mapping[str, Any]):
        super().__init__(info, config)
        try:
            self.settings = ExternalSourceConfig.model_validate(dict(config))
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration for external source '{info.auth_id}': {e}",
                auth_id=info.auth_id,
            ) from e

    def authenticate(self, state: WorkflowState, context: RequestContext) -> Suspension | None:
        return self.suspend(
            state,
            LOGIN_STAGE,
            self.settings.login_url,
            context,
            state_param=self.settings.state_param,
        )

    def logout(self, state: WorkflowState, context: RequestContext) -> Suspension | None:
        if self.settings.logout_url is None:
            return None
        return self.suspend(
            state,
            LOGOUT_STAGE,
            self.settings.logout_url,
            context,
            state_param=self.settings.state_param,
        )

    def resume_login(
        self,
        state_id: str,
        attributes: Mapping[str, Any],
        context: RequestContext,
        session_index: str | None = None,
    ) -> NoReturn:
        """Finish a login once the external page redirected back.

        Args:
            state_id: The id carried through the redirect.
            attributes: Attributes asserted by the external party.
            context: Capabilities of the returning request.
            session_index: External session identifier; when given, the
                requester's logout callback is registered under it.
        """
        state = self._load(state_id, LOGIN_STAGE, context)
        logger.info(f"Source '{self.auth_id}' resuming login for state {state_id[:8]}...")
        state.attributes = normalize_attributes(attributes)
        if session_index is not None:
            self._add_logout_callback(session_index, state, context.session)
        complete_auth(state, context)

    def resume_logout(self, state_id: str, context: RequestContext) -> NoReturn:
        """Finish a logout once the external page redirected back."""
        state = self._load(state_id, LOGOUT_STAGE, context)
        logger.info(f"Source '{self.auth_id}' resuming logout for state {state_id[:8]}...")
        complete_logout(state, context)

    def handle_remote_logout(self, session_index: str, context: RequestContext) -> None:
        """Notify the login requester that the external session ended."""
        self._call_logout_callback(session_index, context.session, context.handlers)

    def _load(self, state_id: str, stage: str, context: RequestContext) -> WorkflowState:
        state = context.state_store.load(state_id, stage)
        if state is None:
            raise StateError(
                f"Unknown or expired state '{state_id[:8]}...' for source '{self.auth_id}'"
            )
        if state.auth_id != self.auth_id:
            raise StateError(
                f"State '{state_id[:8]}...' belongs to source '{state.auth_id}', not '{self.auth_id}'"
            )
        return state


__all__ = ["LOGIN_STAGE", "LOGOUT_STAGE", "ExternalRedirectSource", "ExternalSourceConfig"]
