"""
Error taxonomy shared by the coordinator and the HTTP layer.

The HTTP layer decides the status code per entry point; these classes only
say what went wrong.
"""

from typing import Optional


class BankLinkError(Exception):
    """Base exception for the payment service."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadInput(BankLinkError):
    """Request could not be parsed or a required parameter is missing."""


class StorageError(BankLinkError):
    """Repository operation failed."""


class PaymentNotFound(StorageError):
    """No payment record matches the given identifier."""


class UpstreamError(BankLinkError):
    """TrueLayer returned non-2xx, a malformed body, or timed out."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class EncodingError(BankLinkError):
    """Response could not be serialized."""


class ConfigurationError(BankLinkError):
    """Configuration source is missing or malformed."""
