"""Workflow state threaded through authenticate/logout and their continuations."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from idbroker.sdk.models import SdkBaseModel


class WorkflowState(BaseModel):
    """Externally persistable data describing one in-flight login or logout.

    Handler and callback fields hold names registered in a
    :class:`~idbroker.sdk.auth.handlers.HandlerRegistry`, so the whole state
    serializes to JSON and can be resumed by a different process.

    Attributes:
        id: Identifier assigned by the StateStore when the state is saved.
        stage: Stage the state was last saved under.
        auth_id: Authentication source handling this workflow.
        login_completed_handler: Handler invoked by ``complete_auth``.
        logout_completed_handler: Handler invoked by ``complete_logout``.
        logout_callback: Callback registered for later single sign-out.
        logout_callback_state: State passed to ``logout_callback``.
        attributes: Attributes of the authenticated user.
        data: Free-form data owned by the handling source.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str | None = None
    stage: str | None = None
    auth_id: str | None = None
    login_completed_handler: str | None = None
    logout_completed_handler: str | None = None
    logout_callback: str | None = None
    logout_callback_state: dict[str, Any] | None = None
    attributes: dict[str, list[str]] | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class Suspension(SdkBaseModel):
    """Instruction to redirect the user agent after a workflow was persisted."""

    state_id: str
    redirect_url: str


__all__ = ["Suspension", "WorkflowState"]
