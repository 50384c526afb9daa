"""Configuration loader for the broker and its authentication sources.

This module loads and validates broker settings from ``config.yaml`` and the
authentication source entries from ``authsources.yaml``.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from idbroker.sdk.auth.errors import ConfigurationError
from idbroker.sdk.auth.sessions import InMemorySessionStore
from idbroker.sdk.auth.storage import InMemoryStateStore, SqliteStateStore, StateStore

from .models import BrokerConfigModel

logger = logging.getLogger(__name__)


def _read_yaml(path: Path) -> Any:
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML config file {path}: {e}") from e


def load_broker_config(config_path: Path | None = None) -> BrokerConfigModel:
    """Load broker configuration from a config.yaml file.

    Args:
        config_path: Optional path to the config.yaml file.
                    If not provided, looks for:
                    1. IDBROKER_CONFIG environment variable
                    2. ~/.idbroker/config.yaml
                    3. ./config.yaml

    Returns:
        BrokerConfigModel with broker settings. A relative ``authsources``
        path is resolved against the directory of the config file.

    Raises:
        FileNotFoundError: If an explicitly requested config file doesn't exist
        ConfigurationError: If the config is invalid
    """
    if config_path is None:
        env_path = os.environ.get("IDBROKER_CONFIG")
        if env_path:
            config_path = Path(env_path)
        else:
            candidates = [Path.home() / ".idbroker" / "config.yaml", Path.cwd() / "config.yaml"]
            for candidate in candidates:
                if candidate.exists():
                    config_path = candidate
                    break

            if config_path is None:
                logger.info("No broker config file found, using default configuration")
                return BrokerConfigModel()

    if not config_path.exists():
        raise FileNotFoundError(f"Broker config file not found at {config_path}")

    logger.debug(f"Loading broker config from: {config_path}")
    raw_config = _read_yaml(config_path)

    if not raw_config:
        logger.info("Empty broker config file, using default configuration")
        return BrokerConfigModel()

    if not isinstance(raw_config, dict):
        raise ConfigurationError(f"Broker config file {config_path} must contain a mapping")

    config_section = raw_config.get("config") or {}
    try:
        config = BrokerConfigModel.model_validate(config_section)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid broker config: {e}") from e

    if not config.authsources.is_absolute():
        config = config.model_copy(
            update={"authsources": config_path.parent / config.authsources}
        )
    return config


def load_sources_config(path: Path) -> dict[str, Any]:
    """Load authentication source entries from an authsources.yaml file.

    Only the top-level shape is checked here; each entry is validated when
    the source is looked up, so one malformed entry does not prevent the
    others from being used.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the file is not a mapping of identifiers to entries
    """
    if not path.exists():
        raise FileNotFoundError(f"Authentication source config not found at {path}")

    raw = _read_yaml(path)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Authentication source config {path} must be a mapping")

    sources: dict[str, Any] = {}
    for auth_id, entry in raw.items():
        if not isinstance(auth_id, str):
            raise ConfigurationError(
                f"Authentication source identifiers must be strings, got {auth_id!r}"
            )
        sources[auth_id] = entry

    logger.debug(f"Loaded {len(sources)} authentication source entries from {path}")
    return sources


def build_state_store(config: BrokerConfigModel) -> StateStore:
    """Create the StateStore described by ``config.state``."""
    state_config = config.state
    if state_config.store == "memory":
        return InMemoryStateStore(timeout=state_config.timeout)

    key = None
    if state_config.encryption_key_env:
        key = os.environ.get(state_config.encryption_key_env)
        if not key:
            raise ConfigurationError(
                f"Environment variable {state_config.encryption_key_env} holding the state "
                "encryption key is not set"
            )

    assert state_config.path is not None
    store = SqliteStateStore(
        state_config.path,
        key,
        timeout=state_config.timeout,
        allow_plaintext=state_config.allow_plaintext,
    )
    store.initialize()
    return store


def build_session_store(config: BrokerConfigModel, session_id: str) -> InMemorySessionStore:
    """Create the session data store for one user session."""
    return InMemorySessionStore(
        session_id,
        data_timeout=config.session.data_timeout,
        logout_timeout=config.session.logout_timeout,
    )
