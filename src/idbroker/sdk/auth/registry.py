"""Registry mapping configured type names to authentication source factories.

Source types register themselves when their module is imported::

    @default_registry.register("ldap")
    class LdapSource(AuthSource):
        ...

The auth-source configuration then refers to them by name::

    corp-ldap:
      - ldap
      - hostname: ldap.example.org
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, TypeVar

from idbroker.sdk.auth.errors import ConfigurationError
from idbroker.sdk.auth.source import AuthSource, SourceInfo

logger = logging.getLogger(__name__)

SourceFactory = Callable[[SourceInfo, Mapping[str, Any]], AuthSource]
_F = TypeVar("_F", bound=SourceFactory)


class SourceRegistry:
    """Name → factory map for authentication source types."""

    def __init__(self) -> None:
        self._factories: dict[str, SourceFactory] = {}

    def add(self, type_name: str, factory: SourceFactory) -> None:
        if not type_name:
            raise ValueError("Source type name must be a non-empty string")
        existing = self._factories.get(type_name)
        if existing is not None and existing is not factory:
            raise ValueError(f"Source type '{type_name}' is already registered")
        self._factories[type_name] = factory
        logger.debug(f"Registered source type '{type_name}'")

    def register(self, type_name: str) -> Callable[[_F], _F]:
        """Decorator registering a source class or factory under ``type_name``."""

        def decorator(factory: _F) -> _F:
            self.add(type_name, factory)
            return factory

        return decorator

    def resolve(self, type_name: str) -> SourceFactory:
        """Return the factory for ``type_name``.

        Raises:
            ConfigurationError: If no such source type is registered.
        """
        try:
            return self._factories[type_name]
        except KeyError:
            raise ConfigurationError(f"Unknown authentication source type '{type_name}'") from None

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._factories

    def names(self) -> list[str]:
        return sorted(self._factories)


default_registry = SourceRegistry()


def parse_source_entry(auth_id: str, entry: Any) -> tuple[str, dict[str, Any]]:
    """Split a configuration entry into its type name and options.

    The entry is a list whose first element names the source type. Every
    following element must be a mapping; they are merged in order.

    Raises:
        ConfigurationError: If the entry is malformed.
    """
    if not isinstance(auth_id, str) or not auth_id:
        raise ConfigurationError(
            f"Authentication source identifiers must be non-empty strings, got {auth_id!r}.",
            auth_id=auth_id if isinstance(auth_id, str) else None,
        )

    if not isinstance(entry, (list, tuple)):
        raise ConfigurationError(
            f"Invalid configuration for authentication source '{auth_id}'.", auth_id=auth_id
        )

    if not entry or not isinstance(entry[0], str) or not entry[0]:
        raise ConfigurationError(
            f"Invalid authentication source '{auth_id}': First element must be a string "
            "which identifies the authentication source.",
            auth_id=auth_id,
        )

    options: dict[str, Any] = {}
    for position, item in enumerate(entry[1:], start=1):
        if not isinstance(item, Mapping):
            raise ConfigurationError(
                f"Invalid authentication source '{auth_id}': element {position} must be a mapping "
                f"of options, got {type(item).__name__}.",
                auth_id=auth_id,
            )
        options.update(item)
    return entry[0], options


def get_by_id(
    auth_id: str,
    sources_config: Mapping[str, Any],
    registry: SourceRegistry | None = None,
) -> AuthSource | None:
    """Retrieve the authentication source configured under ``auth_id``.

    Args:
        auth_id: The authentication source identifier.
        sources_config: Mapping of source identifier to configuration entry.
        registry: Source types to resolve against (defaults to ``default_registry``).

    Returns:
        The constructed source, or None if no source is configured under ``auth_id``.

    Raises:
        ConfigurationError: If the entry is malformed or names an unknown type.
    """
    entry = sources_config.get(auth_id)
    if entry is None:
        logger.debug(f"No authentication source configured as '{auth_id}'")
        return None

    type_name, options = parse_source_entry(auth_id, entry)
    factory = (registry or _builtin_registry()).resolve(type_name)
    source = factory(SourceInfo(auth_id=auth_id), options)
    logger.debug(f"Constructed authentication source '{auth_id}' of type '{type_name}'")
    return source


def _builtin_registry() -> SourceRegistry:
    # Importing the package registers the built-in source types.
    import idbroker.sdk.auth.sources  # noqa: F401

    return default_registry


__all__ = [
    "SourceFactory",
    "SourceRegistry",
    "default_registry",
    "get_by_id",
    "parse_source_entry",
]
