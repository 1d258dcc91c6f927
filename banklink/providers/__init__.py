from banklink.providers.base import (
    AccessToken,
    CreatePaymentRequest,
    PaymentAuthorization,
    UpstreamClient,
)
from banklink.providers.truelayer import TrueLayerClient

__all__ = [
    "AccessToken",
    "CreatePaymentRequest",
    "PaymentAuthorization",
    "TrueLayerClient",
    "UpstreamClient",
]
