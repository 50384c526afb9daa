"""Tests for broker and authentication source configuration loading."""

from pathlib import Path

import pytest
from cryptography.fernet import Fernet

from idbroker.sdk.auth import ConfigurationError, InMemoryStateStore, SqliteStateStore, WorkflowState
from idbroker.sdk.core.config import (
    BrokerConfigModel,
    build_session_store,
    build_state_store,
    load_broker_config,
    load_sources_config,
)


def _write(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


class TestLoadBrokerConfig:
    def test_defaults_without_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without any config file the defaults apply."""
        monkeypatch.delenv("IDBROKER_CONFIG", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.chdir(tmp_path)

        config = load_broker_config()

        assert config == BrokerConfigModel()
        assert config.state.store == "memory"

    def test_env_var_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """IDBROKER_CONFIG points at the config file."""
        path = _write(
            tmp_path / "broker.yaml",
            "config:\n  authsources: sources.yaml\n  session:\n    logout_timeout: 60\n",
        )
        monkeypatch.setenv("IDBROKER_CONFIG", str(path))

        config = load_broker_config()

        assert config.authsources == tmp_path / "sources.yaml"
        assert config.session.logout_timeout == 60

    def test_explicit_missing_file(self, tmp_path: Path) -> None:
        """An explicit path that does not exist raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_broker_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Unparseable YAML is a configuration error."""
        path = _write(tmp_path / "config.yaml", "config: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Failed to parse YAML"):
            load_broker_config(path)

    def test_unknown_keys_rejected(self, tmp_path: Path) -> None:
        """Unknown keys in the config section are rejected."""
        path = _write(tmp_path / "config.yaml", "config:\n  sessions: {}\n")
        with pytest.raises(ConfigurationError, match="Invalid broker config"):
            load_broker_config(path)

    def test_sqlite_requires_path(self, tmp_path: Path) -> None:
        """The sqlite store needs a database path."""
        path = _write(tmp_path / "config.yaml", "config:\n  state:\n    store: sqlite\n")
        with pytest.raises(ConfigurationError):
            load_broker_config(path)

    def test_sqlite_requires_key_or_plaintext(self, tmp_path: Path) -> None:
        """The sqlite store needs a key variable or an explicit plaintext opt-in."""
        path = _write(
            tmp_path / "config.yaml",
            f"config:\n  state:\n    store: sqlite\n    path: {tmp_path / 'state.db'}\n",
        )
        with pytest.raises(ConfigurationError, match="encryption_key_env is required"):
            load_broker_config(path)

    def test_sqlite_plaintext_opt_in(self, tmp_path: Path) -> None:
        """allow_plaintext lets the sqlite store run without a key."""
        path = _write(
            tmp_path / "config.yaml",
            f"config:\n  state:\n    store: sqlite\n    path: {tmp_path / 'state.db'}\n"
            "    allow_plaintext: true\n",
        )

        store = build_state_store(load_broker_config(path))
        assert isinstance(store, SqliteStateStore)
        assert store.load(store.save(WorkflowState(), "stage")) is not None
        store.close()


class TestLoadSourcesConfig:
    def test_loads_entries(self, tmp_path: Path) -> None:
        """Entries load as-is, malformed ones included."""
        path = _write(
            tmp_path / "authsources.yaml",
            "admin:\n  - static\n  - attributes:\n      uid: admin\n"
            "broken: static\n",
        )

        sources = load_sources_config(path)

        assert sources["admin"] == ["static", {"attributes": {"uid": "admin"}}]
        # Malformed entries are kept and rejected at lookup time.
        assert sources["broken"] == "static"

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty sources file yields no entries."""
        assert load_sources_config(_write(tmp_path / "authsources.yaml", "")) == {}

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        """A sources file must be a mapping."""
        with pytest.raises(ConfigurationError):
            load_sources_config(_write(tmp_path / "authsources.yaml", "- static\n"))

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing sources file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_sources_config(tmp_path / "authsources.yaml")


class TestBuildStores:
    def test_memory_state_store(self) -> None:
        """The default config builds an in-memory state store."""
        store = build_state_store(BrokerConfigModel())
        assert isinstance(store, InMemoryStateStore)

    def test_sqlite_state_store_with_env_key(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """The sqlite store reads its Fernet key from the environment."""
        monkeypatch.setenv("TEST_STATE_KEY", Fernet.generate_key().decode())
        config = BrokerConfigModel.model_validate(
            {
                "state": {
                    "store": "sqlite",
                    "path": str(tmp_path / "state.db"),
                    "encryption_key_env": "TEST_STATE_KEY",
                    "timeout": 60,
                }
            }
        )

        store = build_state_store(config)
        assert isinstance(store, SqliteStateStore)
        state_id = store.save(WorkflowState(), "stage")
        assert store.load(state_id) is not None
        store.close()

    def test_missing_key_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """An unset key variable is a configuration error."""
        monkeypatch.delenv("TEST_STATE_KEY", raising=False)
        config = BrokerConfigModel.model_validate(
            {
                "state": {
                    "store": "sqlite",
                    "path": str(tmp_path / "state.db"),
                    "encryption_key_env": "TEST_STATE_KEY",
                }
            }
        )
        with pytest.raises(ConfigurationError):
            build_state_store(config)

    def test_session_store_uses_configured_timeouts(self) -> None:
        """Session stores get the configured lifetimes."""
        config = BrokerConfigModel.model_validate({"session": {"data_timeout": 10, "logout_timeout": 20}})
        session = build_session_store(config, "sid")
        assert session.session_id == "sid"
        assert session.data_timeout == 10
        assert session.logout_timeout == 20
