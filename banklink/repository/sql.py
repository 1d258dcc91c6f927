"""SQLAlchemy-backed payment repository."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from banklink.errors import PaymentNotFound, StorageError
from banklink.models.enums import PaymentStatus
from banklink.models.payment import Payment
from banklink.repository.base import PaymentRecord, PaymentRepository

logger = logging.getLogger("banklink.repository")


def _to_record(p: Payment) -> PaymentRecord:
    return PaymentRecord(
        local_id=p.id,
        receiver_id=p.receiver_id,
        amount=p.amount,
        status=p.status,
        upstream_id=p.truelayer_payment_id or "",
    )


class SqlPaymentRepository(PaymentRepository):
    """
    One short transaction per operation.

    Every SQLAlchemy failure surfaces as ``StorageError`` so callers never
    depend on driver exceptions.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except IntegrityError as e:
            raise StorageError(f"{operation}: constraint violated ({e.orig})") from e
        except SQLAlchemyError as e:
            logger.error("Storage failure during %s: %s", operation, e)
            raise StorageError(f"{operation}: {e}") from e

    async def insert(self, receiver_id: str, amount: int) -> str:
        if amount is None or amount <= 0:
            raise StorageError(f"Invalid amount: {amount}")

        async with self._session("insert") as session:
            payment = Payment(
                receiver_id=receiver_id,
                amount=amount,
                status=PaymentStatus.UNPAID.value,
                truelayer_payment_id=None,
            )
            session.add(payment)
            await session.commit()
            return payment.id

    async def attach_upstream(self, local_id: str, upstream_id: str) -> None:
        if not upstream_id:
            raise StorageError("Upstream payment id must not be empty")

        async with self._session("attach_upstream") as session:
            payment = await session.get(Payment, local_id)
            if payment is None:
                raise PaymentNotFound(f"Payment not found: {local_id}")
            if payment.truelayer_payment_id == upstream_id:
                return
            payment.truelayer_payment_id = upstream_id
            await session.commit()

    async def update_status(self, upstream_id: str, status: str) -> None:
        async with self._session("update_status") as session:
            result = await session.execute(
                update(Payment)
                .where(Payment.truelayer_payment_id == upstream_id)
                .values(status=status)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise PaymentNotFound(f"No payment linked to TrueLayer payment {upstream_id}")
            await session.commit()

    async def get_by_local_id(self, local_id: str) -> PaymentRecord:
        async with self._session("get_by_local_id") as session:
            payment = await session.get(Payment, local_id)
            if payment is None:
                raise PaymentNotFound(f"Payment not found: {local_id}")
            return _to_record(payment)

    async def get_by_upstream_id(self, upstream_id: str) -> PaymentRecord:
        if not upstream_id:
            raise PaymentNotFound("No payment linked to an empty TrueLayer payment id")

        async with self._session("get_by_upstream_id") as session:
            result = await session.execute(
                select(Payment).where(Payment.truelayer_payment_id == upstream_id)
            )
            payment = result.scalar_one_or_none()
            if payment is None:
                raise PaymentNotFound(f"No payment linked to TrueLayer payment {upstream_id}")
            return _to_record(payment)
