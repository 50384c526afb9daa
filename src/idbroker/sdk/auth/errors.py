"""Error taxonomy for the authentication source lifecycle."""

from __future__ import annotations

from typing import Any


class AuthSourceError(Exception):
    """Base class for errors raised by the authentication source layer."""


class ConfigurationError(AuthSourceError):
    """An authentication source or broker configuration entry is malformed."""

    def __init__(self, message: str, auth_id: str | None = None):
        super().__init__(message)
        self.auth_id = auth_id


class ContractViolationError(AuthSourceError):
    """A caller or source broke the lifecycle contract.

    These are programming errors, not recoverable conditions, and must
    propagate to the top-level handler of the request.
    """


class CompletionHandlerReturnedError(ContractViolationError):
    """A completion handler returned instead of taking over control flow."""

    def __init__(self, handler_name: str, kind: str):
        super().__init__(
            f"{kind} handler '{handler_name}' returned; completion handlers must take over "
            "control flow by raising HandlerTakeover"
        )
        self.handler_name = handler_name
        self.kind = kind


class StateError(AuthSourceError):
    """Persisted workflow state could not be used."""


class StateStageMismatchError(StateError):
    """Persisted state was loaded under a different stage than it was saved with."""

    def __init__(self, state_id: str, expected: str, actual: str | None):
        super().__init__(
            f"Wrong stage in state '{state_id[:8]}...': expected '{expected}', got '{actual}'"
        )
        self.state_id = state_id
        self.expected = expected
        self.actual = actual


class HandlerTakeover(BaseException):
    """Raised by a completion handler to hand control back to the host.

    The host catches this at the top of the request and turns ``result``
    (typically an HTTP response) into its reply. Like ``SystemExit`` it derives
    from ``BaseException``, so an ``except Exception`` between the handler and
    the host does not intercept it.
    """

    def __init__(self, result: Any = None):
        super().__init__("completion handler took over control flow")
        self.result = result


__all__ = [
    "AuthSourceError",
    "CompletionHandlerReturnedError",
    "ConfigurationError",
    "ContractViolationError",
    "HandlerTakeover",
    "StateError",
    "StateStageMismatchError",
]
