"""Per-request capabilities handed to authentication sources."""

from dataclasses import dataclass

from idbroker.sdk.auth.handlers import HandlerRegistry
from idbroker.sdk.auth.sessions import SessionStore
from idbroker.sdk.auth.storage import StateStore


@dataclass(frozen=True)
class RequestContext:
    """Everything a source or continuation needs for the current request.

    Attributes:
        state_store: Where suspended workflow state is persisted.
        session: Session data of the user making the request.
        handlers: Completion handlers and logout callbacks known to the host.
    """

    state_store: StateStore
    session: SessionStore
    handlers: HandlerRegistry


__all__ = ["RequestContext"]
