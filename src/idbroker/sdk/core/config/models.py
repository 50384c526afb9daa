"""Pydantic models for broker configuration.

The broker configuration is loaded from a config.yaml file:

```yaml
config:
  authsources: "authsources.yaml"
  state:
    store: sqlite
    path: "/var/lib/idbroker/state.db"
    encryption_key_env: "IDBROKER_STATE_KEY"
    timeout: 3600
  session:
    data_timeout: 14400
    logout_timeout: 28800
```
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator

from idbroker.sdk.auth.sessions import DEFAULT_DATA_TIMEOUT, DEFAULT_LOGOUT_TIMEOUT
from idbroker.sdk.auth.storage import DEFAULT_STATE_TIMEOUT
from idbroker.sdk.models import SdkBaseModel


class StateConfigModel(SdkBaseModel):
    """Where suspended workflow state is kept.

    Attributes:
        store: ``memory`` for a process-local store, ``sqlite`` for a database file
        path: Database file, required for ``sqlite``
        encryption_key_env: Environment variable holding the Fernet key
        allow_plaintext: Store state unencrypted when no key is configured
        timeout: Seconds a suspended workflow can wait to be resumed
    """

    store: Literal["memory", "sqlite"] = "memory"
    path: Path | None = None
    encryption_key_env: str | None = None
    allow_plaintext: bool = False
    timeout: int = Field(default=DEFAULT_STATE_TIMEOUT, gt=0)

    @model_validator(mode="after")
    def _check_sqlite(self) -> "StateConfigModel":
        if self.store == "sqlite" and self.path is None:
            raise ValueError("state.path is required when state.store is 'sqlite'")
        if self.store == "sqlite" and self.encryption_key_env is None and not self.allow_plaintext:
            raise ValueError(
                "state.encryption_key_env is required when state.store is 'sqlite'; "
                "set state.allow_plaintext to store workflow state unencrypted"
            )
        return self


class SessionConfigModel(SdkBaseModel):
    """Lifetimes of session data entries, in seconds."""

    data_timeout: int = Field(default=DEFAULT_DATA_TIMEOUT, gt=0)
    logout_timeout: int = Field(default=DEFAULT_LOGOUT_TIMEOUT, gt=0)


class BrokerConfigModel(SdkBaseModel):
    """Root broker configuration.

    Attributes:
        authsources: Path of the authentication source configuration file
        state: Workflow state persistence settings
        session: Session data lifetimes
    """

    authsources: Path = Path("authsources.yaml")
    state: StateConfigModel = Field(default_factory=StateConfigModel)
    session: SessionConfigModel = Field(default_factory=SessionConfigModel)
