"""
Error types raised by the wizard and the share-link codec.
"""
from typing import Optional


class WizardError(Exception):
    """Base class for recoverable wizard errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DecodeError(WizardError, ValueError):
    """A shared-plan token could not be turned back into an itinerary."""


class GatewayUnavailable(WizardError):
    """The AI service returned no data. The user may retry."""

    retriable = True

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class MissingPrecondition(WizardError):
    """A step was asked to run without the data it needs."""


class InvalidTransition(WizardError):
    """The requested action is not available from the current step."""
