from banklink.repository.base import PaymentRecord, PaymentRepository
from banklink.repository.sql import SqlPaymentRepository

__all__ = ["PaymentRecord", "PaymentRepository", "SqlPaymentRepository"]
