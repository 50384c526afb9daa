"""Base class for authentication sources.

An authentication source is any component that somehow authenticates the
user: a local password table, a federated identity provider, a static test
fixture. Sources are looked up by identifier, handed a workflow state, and
either finish synchronously or suspend the workflow behind an external
redirect. A suspended workflow is finished later, from another request, by
``complete_auth``/``complete_logout``.

Sources may also register logout callbacks so that a logout arriving out of
band (single sign-out) can notify whoever started the login.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import Field

from idbroker.sdk.auth.context import RequestContext
from idbroker.sdk.auth.handlers import HandlerRegistry
from idbroker.sdk.auth.sessions import DataTimeout, SessionStore
from idbroker.sdk.auth.state import Suspension, WorkflowState
from idbroker.sdk.models import SdkBaseModel

if TYPE_CHECKING:
    from idbroker.sdk.auth.registry import SourceRegistry

logger = logging.getLogger(__name__)

LOGOUT_CALLBACKS_NAMESPACE = "idbroker.auth.source.logout_callbacks"


class SourceInfo(SdkBaseModel):
    """Information the broker passes to every source it constructs."""

    auth_id: str = Field(min_length=1)


class LogoutCallbackEntry(SdkBaseModel):
    """A logout callback registration stored in the user's session."""

    callback: str
    state: dict[str, Any] = Field(default_factory=dict)


def logout_callback_key(auth_id: str, assoc: str) -> str:
    """Build the session key for a logout association.

    The source identifier is length-prefixed so that two sources can never
    derive the same key: ``("ab", "c")`` and ``("a", "bc")`` map to
    ``"2:abc"`` and ``"1:abc"``.
    """
    return f"{len(auth_id)}:{auth_id}{assoc}"


def add_query_param(url: str, name: str, value: str) -> str:
    """Return ``url`` with ``name=value`` appended to its query string."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append((name, value))
    return urlunsplit(parts._replace(query=urlencode(query)))


class AuthSource(ABC):
    """Base class every authentication source implements.

    Subclasses that define their own constructor must call this one first.

    Args:
        info: Broker-supplied information, including the source identifier.
        config: Source-specific options from the auth-source configuration.
    """

    def __init__(self, info: SourceInfo, config: Mapping[str, Any]):
        self._auth_id = info.auth_id
        self.config = dict(config)

    @property
    def auth_id(self) -> str:
        """Identifier this source was configured under."""
        return self._auth_id

    @abstractmethod
    def authenticate(self, state: WorkflowState, context: RequestContext) -> Suspension | None:
        """Process a login request.

        Returning ``None`` means the user is authenticated and ``state.attributes``
        has been filled in. When the login needs further steps that cannot finish
        before returning (a redirect to an external login page), the source saves
        the state with :meth:`suspend` and returns the resulting ``Suspension``.
        The workflow is then finished later by calling ``complete_auth`` with the
        reloaded and updated state.
        """

    def logout(self, state: WorkflowState, context: RequestContext) -> Suspension | None:
        """Log out from this source.

        Override when logout needs special steps. If it requires a redirect,
        save the state with :meth:`suspend` and, once the logout is done,
        reload it and call ``complete_logout``. The default does nothing and
        completes immediately.
        """
        return None

    def suspend(
        self,
        state: WorkflowState,
        stage: str,
        redirect_url: str,
        context: RequestContext,
        *,
        state_param: str = "state",
    ) -> Suspension:
        """Persist ``state`` under ``stage`` and describe the redirect to issue.

        The saved state id is added to ``redirect_url`` as the ``state_param``
        query parameter so the returning request can reload it.
        """
        state.auth_id = self.auth_id
        state_id = context.state_store.save(state, stage)
        logger.info(f"Source '{self.auth_id}' suspended workflow at stage {stage}")
        return Suspension(
            state_id=state_id,
            redirect_url=add_query_param(redirect_url, state_param, state_id),
        )

    @staticmethod
    def get_by_id(
        auth_id: str,
        sources_config: Mapping[str, Any],
        registry: SourceRegistry | None = None,
    ) -> AuthSource | None:
        """Construct the source configured under ``auth_id``, or return None."""
        from idbroker.sdk.auth.registry import get_by_id

        return get_by_id(auth_id, sources_config, registry)

    # ── Logout callbacks ───────────────────────────────────────────────────────
    def _add_logout_callback(self, assoc: str, state: WorkflowState, session: SessionStore) -> None:
        """Register a logout callback association.

        Associations exist per source: one registered by this source can only
        be called by this source. Does nothing when the login requester did
        not ask for a logout callback.

        Args:
            assoc: Identifier for this association, chosen by the source.
            state: The state passed to :meth:`authenticate`.
            session: Session of the authenticated user.
        """
        if state.logout_callback is None:
            return

        entry = LogoutCallbackEntry(
            callback=state.logout_callback,
            state=state.logout_callback_state or {},
        )
        session.set_data(
            LOGOUT_CALLBACKS_NAMESPACE,
            logout_callback_key(self.auth_id, assoc),
            entry.model_dump(),
            DataTimeout.LOGOUT,
        )
        logger.debug(f"Source '{self.auth_id}' registered logout callback '{entry.callback}'")

    def _call_logout_callback(
        self, assoc: str, session: SessionStore, handlers: HandlerRegistry
    ) -> None:
        """Call the logout callback registered under ``assoc``.

        A missing registration (never made, already expired) is not an error.
        This method always returns.
        """
        key = logout_callback_key(self.auth_id, assoc)
        data = session.get_data(LOGOUT_CALLBACKS_NAMESPACE, key)
        if data is None:
            logger.debug(f"No logout callback for source '{self.auth_id}'")
            return

        entry = LogoutCallbackEntry.model_validate(data)
        callback = handlers.get_logout_callback(entry.callback)
        logger.info(f"Source '{self.auth_id}' calling logout callback '{entry.callback}'")
        callback(dict(entry.state))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(auth_id={self.auth_id!r})"


__all__ = [
    "LOGOUT_CALLBACKS_NAMESPACE",
    "AuthSource",
    "LogoutCallbackEntry",
    "SourceInfo",
    "add_query_param",
    "logout_callback_key",
]
