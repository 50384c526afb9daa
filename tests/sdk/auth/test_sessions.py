"""Tests for InMemorySessionStore and timeout classes."""

import time

import pytest

from idbroker.sdk.auth import DataTimeout, InMemorySessionStore, SessionStore


class TestInMemorySessionStore:
    def test_set_and_get(self) -> None:
        """Stored values can be read back."""
        store = InMemorySessionStore()
        store.set_data("ns", "key", {"a": [1, 2]})

        assert store.get_data("ns", "key") == {"a": [1, 2]}

    def test_namespaces_are_separate(self) -> None:
        """Equal keys in different namespaces do not collide."""
        store = InMemorySessionStore()
        store.set_data("ns1", "key", "one")
        store.set_data("ns2", "key", "two")

        assert store.get_data("ns1", "key") == "one"
        assert store.get_data("ns2", "key") == "two"
        assert store.get_data("ns3", "key") is None

    def test_values_are_copied(self) -> None:
        """Callers cannot mutate stored values through references."""
        store = InMemorySessionStore()
        value = {"a": [1]}
        store.set_data("ns", "key", value)
        value["a"].append(2)

        loaded = store.get_data("ns", "key")
        loaded["a"].append(3)

        assert store.get_data("ns", "key") == {"a": [1]}

    def test_timeout_classes(self) -> None:
        """Each timeout class resolves to its configured duration."""
        store = InMemorySessionStore(data_timeout=100, logout_timeout=200)

        assert store.resolve_timeout(DataTimeout.DEFAULT) == 100
        assert store.resolve_timeout(DataTimeout.LOGOUT) == 200
        assert store.resolve_timeout(30) == 30
        with pytest.raises(ValueError):
            store.resolve_timeout(-1)

    def test_logout_class_outlives_default(self) -> None:
        """LOGOUT entries outlive DEFAULT entries."""
        store = InMemorySessionStore(data_timeout=0, logout_timeout=3600)
        store.set_data("ns", "short", 1)
        store.set_data("ns", "long", 2, DataTimeout.LOGOUT)
        time.sleep(0.01)

        assert store.get_data("ns", "short") is None
        assert store.get_data("ns", "long") == 2

    def test_delete_and_cleanup(self) -> None:
        """Entries can be deleted and expired ones are cleaned up."""
        store = InMemorySessionStore()
        store.set_data("ns", "a", 1)
        store.set_data("ns", "b", 2, 0)
        store.delete_data("ns", "a")
        store.delete_data("missing", "a")
        time.sleep(0.01)

        assert store.get_data("ns", "a") is None
        assert store.cleanup_expired() == 1
        assert store.cleanup_expired() == 0

    def test_satisfies_protocol(self) -> None:
        """InMemorySessionStore implements SessionStore."""
        assert isinstance(InMemorySessionStore(), SessionStore)
