"""
TrueLayer single immediate payments client.

Wraps the four calls the service needs:
  - POST {auth}/connect/token                  (client-credentials token)
  - POST {pay}/single-immediate-payments        (create payment, bearer)
  - GET  {pay}/single-immediate-payments/{id}   (payment status, bearer)
  - GET  {pay}/providers                        (bank list, passed through)

All calls share one httpx.AsyncClient with a bounded total timeout. There
is no retry: transport failures and timeouts surface as UpstreamError.
"""

import logging
from typing import Any, Optional

import httpx

from banklink.errors import UpstreamError
from banklink.providers.base import (
    AccessToken,
    CreatePaymentRequest,
    PaymentAuthorization,
    UpstreamClient,
)

logger = logging.getLogger("banklink.truelayer")

PROVIDER_CAPABILITY = "SingleImmediatePayment"
TOKEN_SCOPE = "payments"


class TrueLayerClient(UpstreamClient):
    def __init__(
        self,
        auth_base_url: str,
        pay_base_url: str,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._auth_base_url = auth_base_url.rstrip("/")
        self._pay_base_url = pay_base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def issue_token(self, client_id: str, client_secret: str) -> AccessToken:
        response = await self._send(
            "POST",
            f"{self._auth_base_url}/connect/token",
            data={
                "scope": TOKEN_SCOPE,
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "client_credentials",
            },
        )
        if not response.is_success:
            raise UpstreamError(
                f"TrueLayer token endpoint responded with {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        data = _json(response)
        try:
            token = AccessToken(value=str(data["access_token"]), expires_in=int(data["expires_in"]))
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError(f"Malformed token response: {e}") from e
        if not token.value:
            raise UpstreamError("Malformed token response: empty access_token")
        return token

    async def create_payment(self, token: str, request: CreatePaymentRequest) -> PaymentAuthorization:
        response = await self._send(
            "POST",
            f"{self._pay_base_url}/single-immediate-payments",
            json=request.to_payload(),
            headers=_bearer(token),
        )
        if response.status_code != httpx.codes.OK:
            logger.warning(
                "Payment creation for %s rejected (%d): %s",
                request.uuid,
                response.status_code,
                response.text,
            )
            raise UpstreamError(
                "TrueLayer API did not respond with code 200",
                status_code=response.status_code,
                body=response.text,
            )

        result = _first_result(_json(response), "create payment")
        try:
            return PaymentAuthorization(upstream_id=str(result["simp_id"]), auth_uri=str(result["auth_uri"]))
        except (KeyError, TypeError) as e:
            raise UpstreamError(f"Malformed create payment response: missing {e}") from e

    async def get_payment_status(self, token: str, upstream_id: str) -> str:
        response = await self._send(
            "GET",
            f"{self._pay_base_url}/single-immediate-payments/{upstream_id}",
            headers=_bearer(token),
        )
        if not response.is_success:
            raise UpstreamError(
                f"TrueLayer payment status query responded with {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        result = _first_result(_json(response), "payment status")
        try:
            return str(result["status"])
        except (KeyError, TypeError) as e:
            raise UpstreamError(f"Malformed payment status response: missing {e}") from e

    async def list_providers(self) -> bytes:
        response = await self._send(
            "GET",
            f"{self._pay_base_url}/providers",
            params={"capability": PROVIDER_CAPABILITY},
        )
        if not response.is_success:
            raise UpstreamError(
                f"TrueLayer providers endpoint responded with {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response.content

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"TrueLayer request timed out: {method} {url}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"TrueLayer request failed: {method} {url}: {e}") from e


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise UpstreamError(f"Malformed response body from {response.request.url}: {e}") from e


def _first_result(data: Any, operation: str) -> dict:
    results = data.get("results") if isinstance(data, dict) else None
    if not results:
        raise UpstreamError(f"Empty results in {operation} response")
    if not isinstance(results, list) or not isinstance(results[0], dict):
        raise UpstreamError(f"Malformed results in {operation} response")
    return results[0]
