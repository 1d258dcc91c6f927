"""Enumerations for the payment domain model."""

from enum import Enum
from typing import Union


class PaymentStatus(str, Enum):
    """
    Lifecycle states of a single immediate payment, as reported by TrueLayer.

        unpaid → authorization_required → authorizing → executed → succeeded
                                                      ↘ failed / cancelled
    """

    UNPAID = "unpaid"
    AUTHORIZATION_REQUIRED = "authorization_required"
    AUTHORIZING = "authorizing"
    EXECUTED = "executed"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({
    PaymentStatus.SUCCEEDED,
    PaymentStatus.FAILED,
    PaymentStatus.CANCELLED,
})


def parse_status(raw: str) -> Union[PaymentStatus, str]:
    """Map a raw status to the enum; statuses we don't know yet pass through verbatim."""
    try:
        return PaymentStatus(raw)
    except ValueError:
        return raw


def is_terminal(status: Union[PaymentStatus, str]) -> bool:
    return parse_status(status) in TERMINAL_STATUSES
