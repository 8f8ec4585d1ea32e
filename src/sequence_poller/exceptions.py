"""
Custom exceptions for the sequence poller.

Fetch and predicate failures raised inside a polling chain are never wrapped
in these types; they reach ``on_error`` exactly as raised. The classes below
cover misuse of the package itself.
"""

from typing import Any


class SequencePollerError(Exception):
    """Base exception for sequence poller errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code or "SEQUENCE_POLLER_ERROR"
        self.context = context or {}


class PollingConfigurationError(SequencePollerError):
    """Exception for invalid polling options or settings."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, "POLLING_CONFIGURATION_ERROR", context)


class RegistrationError(SequencePollerError):
    """Exception for registration store misuse."""

    def __init__(
        self,
        message: str,
        name: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "REGISTRATION_ERROR", context)
        self.name = name
