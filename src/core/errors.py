from __future__ import annotations


class RecallError(Exception):
    """Base error for the recall server."""


class ValidationError(RecallError):
    """Raised when user input is invalid."""


class ExternalServiceError(RecallError):
    """Raised when the recall worker API fails."""


class NotFoundError(RecallError):
    """Raised when a requested memory or resource is not found."""
