"""
Payment repository interface.

The coordinator only talks to storage through these five operations, so
the SQL implementation can be swapped for anything that honours the same
contract.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentRecord:
    """Snapshot of a stored payment."""

    local_id: str
    receiver_id: str
    amount: int  # Smallest currency unit
    status: str
    upstream_id: str = ""  # Empty until TrueLayer has created the payment


class PaymentRepository(ABC):
    """Abstract base class for payment storage."""

    @abstractmethod
    async def insert(self, receiver_id: str, amount: int) -> str:
        """
        Persist a new ``unpaid`` payment and return its local id.

        Raises:
            StorageError: If ``amount`` is not positive or the store fails.
        """
        ...

    @abstractmethod
    async def attach_upstream(self, local_id: str, upstream_id: str) -> None:
        """
        Link a local payment to its TrueLayer payment id.

        Idempotent for the same ``upstream_id``.

        Raises:
            PaymentNotFound: If no payment has ``local_id``.
            StorageError: If ``upstream_id`` is already linked elsewhere.
        """
        ...

    @abstractmethod
    async def update_status(self, upstream_id: str, status: str) -> None:
        """
        Overwrite the status of the payment linked to ``upstream_id``.

        No transition rules are enforced here.

        Raises:
            PaymentNotFound: If no payment is linked to ``upstream_id``.
        """
        ...

    @abstractmethod
    async def get_by_local_id(self, local_id: str) -> PaymentRecord:
        ...

    @abstractmethod
    async def get_by_upstream_id(self, upstream_id: str) -> PaymentRecord:
        ...
