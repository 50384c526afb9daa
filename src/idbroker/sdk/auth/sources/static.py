"""Authentication source returning a fixed set of attributes (no user interaction)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from idbroker.sdk.auth.context import RequestContext
from idbroker.sdk.auth.errors import ConfigurationError
from idbroker.sdk.auth.registry import default_registry
from idbroker.sdk.auth.source import AuthSource, SourceInfo
from idbroker.sdk.auth.state import Suspension, WorkflowState


def normalize_attributes(value: Any) -> dict[str, list[str]]:
    """Coerce ``{name: value | [values]}`` into ``{name: [str, ...]}``."""
    if not isinstance(value, Mapping):
        raise ValueError("attributes must be a mapping")
    normalized: dict[str, list[str]] = {}
    for name, values in value.items():
        if isinstance(values, (list, tuple)):
            normalized[str(name)] = [str(v) for v in values]
        else:
            normalized[str(name)] = [str(values)]
    return normalized


class StaticSourceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    attributes: dict[str, list[str]]
    logout_assoc: str | None = None

    @field_validator("attributes", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> dict[str, list[str]]:
        return normalize_attributes(value)


@default_registry.register("static")
class StaticSource(AuthSource):
    """Authenticates every request as the same user.

    Useful for tests, demos and service accounts. When ``logout_assoc`` is
    configured the source registers the requester's logout callback under it,
    and :meth:`handle_remote_logout` fires that callback.
    """

    def __init__(self, info: SourceInfo, config: Mapping[str, Any]):
        super().__init__(info, config)
        try:
            self.settings = StaticSourceConfig.model_validate(dict(config))
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration for static source '{info.auth_id}': {e}",
                auth_id=info.auth_id,
            ) from e

    def authenticate(self, state: WorkflowState, context: RequestContext) -> Suspension | None:
        state.attributes = {name: list(values) for name, values in self.settings.attributes.items()}
        if self.settings.logout_assoc is not None:
            self._add_logout_callback(self.settings.logout_assoc, state, context.session)
        return None

    def handle_remote_logout(self, context: RequestContext) -> None:
        if self.settings.logout_assoc is not None:
            self._call_logout_callback(
                self.settings.logout_assoc, context.session, context.handlers
            )


__all__ = ["StaticSource", "StaticSourceConfig", "normalize_attributes"]
