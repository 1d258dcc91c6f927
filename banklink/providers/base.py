"""
Abstract open-banking provider interface.

TrueLayer is the only real implementation; tests plug in fakes so the
coordinator never reaches the network.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass


@dataclass
class CreatePaymentRequest:
    """Single immediate payment to create upstream. Field names follow the wire format."""

    uuid: str  # Local payment id
    amount: int  # Smallest currency unit
    currency: str = ""
    beneficiary_name: str = ""
    beneficiary_reference: str = ""
    beneficiary_sort_code: str = ""
    beneficiary_account_number: str = ""
    remitter_reference: str = ""
    redirect_uri: str = ""
    remitter_provider_id: str = ""

    def to_payload(self) -> dict:
        return asdict(self)


@dataclass
class AccessToken:
    """OAuth2 client-credentials token as issued."""

    value: str
    expires_in: int  # Seconds from issuance


@dataclass
class PaymentAuthorization:
    """Result of creating a payment upstream."""

    upstream_id: str  # TrueLayer simp_id
    auth_uri: str


class UpstreamClient(ABC):
    """Abstract base class for the payment provider's HTTP contract."""

    @abstractmethod
    async def issue_token(self, client_id: str, client_secret: str) -> AccessToken:
        """
        Obtain a client-credentials access token with the ``payments`` scope.

        Raises:
            UpstreamError: On non-2xx, malformed body, or timeout.
        """
        ...

    @abstractmethod
    async def create_payment(self, token: str, request: CreatePaymentRequest) -> PaymentAuthorization:
        """
        Create a single immediate payment.

        Raises:
            UpstreamError: On non-200, empty ``results``, or timeout.
        """
        ...

    @abstractmethod
    async def get_payment_status(self, token: str, upstream_id: str) -> str:
        """Return the raw upstream status string of a payment."""
        ...

    @abstractmethod
    async def list_providers(self) -> bytes:
        """Return the providers list body verbatim."""
        ...

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
