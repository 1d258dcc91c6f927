from banklink.models.enums import TERMINAL_STATUSES, PaymentStatus, is_terminal, parse_status
from banklink.models.payment import Base, Payment

__all__ = [
    "Base",
    "Payment",
    "PaymentStatus",
    "TERMINAL_STATUSES",
    "is_terminal",
    "parse_status",
]
