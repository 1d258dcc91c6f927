"""SQLAlchemy models for the payment service."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase

from banklink.models.enums import PaymentStatus


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Payment(Base):
    """
    A payment prepared by the merchant front-end.

    Created locally with status ``unpaid``; ``truelayer_payment_id`` is
    attached once TrueLayer has created the matching single immediate
    payment. NULL stands for "not created upstream yet" so the unique
    constraint only applies to real upstream ids.
    """

    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=_new_id)
    receiver_id = Column(String(200), nullable=False)
    amount = Column(Integer, nullable=False)
    status = Column(String(50), nullable=False, default=PaymentStatus.UNPAID.value)
    truelayer_payment_id = Column(String(100), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
