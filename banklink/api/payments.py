"""
Payment endpoints used by the merchant front-end.

POST /api/payment         — Prepare a local payment.
POST /api/pay             — Create the payment at TrueLayer, return the bank auth URL.
GET  /api/callback        — TrueLayer redirect target; reconcile and send the user back.
GET  /api/banks           — TrueLayer providers list, passed through.
GET  /api/payment/{uuid}  — Local payment data.

Handlers only translate: coordinator errors become ``{message}`` bodies
with the status code of the entry point.
"""

from typing import Optional, TypeVar
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field, ValidationError

from banklink.config import settings
from banklink.engine.coordinator import PaymentCoordinator
from banklink.errors import BadInput, EncodingError, StorageError, UpstreamError
from banklink.providers.base import CreatePaymentRequest
from banklink.repository.base import PaymentRecord

router = APIRouter(prefix="/api", tags=["payments"])

M = TypeVar("M", bound=BaseModel)


class PreparePaymentRequest(BaseModel):
    receiver_id: str
    amount: int


class PreparePaymentResponse(BaseModel):
    uuid: str


class PayRequest(BaseModel):
    uuid: str = ""
    amount: int = 0
    currency: str = ""
    beneficiary_name: str = ""
    beneficiary_reference: str = ""
    beneficiary_sort_code: str = ""
    beneficiary_account_number: str = ""
    remitter_reference: str = ""
    redirect_uri: str = Field(default_factory=lambda: settings.callback_redirect_uri)
    remitter_provider_id: str = ""


class PayResponse(BaseModel):
    url: str


class PaymentDataResponse(BaseModel):
    uuid: str
    receiver_id: str
    amount: int
    status: str
    truelayer_payment_id: str


def get_coordinator(request: Request) -> PaymentCoordinator:
    return request.app.state.coordinator


def _encode(model: type[M], **fields) -> M:
    try:
        return model(**fields)
    except ValidationError as e:
        raise EncodingError(f"Unable to encode response body: {e}") from e


def _payment_data(record: PaymentRecord) -> PaymentDataResponse:
    return _encode(
        PaymentDataResponse,
        uuid=record.local_id,
        receiver_id=record.receiver_id,
        amount=record.amount,
        status=record.status,
        truelayer_payment_id=record.upstream_id,
    )


@router.post("/payment", response_model=PreparePaymentResponse)
async def prepare_payment(
    body: PreparePaymentRequest,
    coordinator: PaymentCoordinator = Depends(get_coordinator),
):
    """Prepare a new payment in the local database only."""
    try:
        local_id = await coordinator.prepare(body.receiver_id, body.amount)
        return _encode(PreparePaymentResponse, uuid=local_id)
    except StorageError as e:
        raise HTTPException(status_code=400, detail=f"Unable to process payment preparation: {e.message}")
    except EncodingError as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.post("/pay", response_model=PayResponse)
async def pay(
    body: PayRequest,
    coordinator: PaymentCoordinator = Depends(get_coordinator),
):
    """Create the payment at TrueLayer and respond with the bank authorization URL."""
    try:
        url = await coordinator.request_payment_url(CreatePaymentRequest(**body.model_dump()))
        return _encode(PayResponse, url=url)
    except (StorageError, UpstreamError) as e:
        raise HTTPException(status_code=400, detail=f"Unable to process payment request: {e.message}")
    except EncodingError as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.get("/callback")
async def bank_callback(
    payment_id: Optional[str] = Query(None),
    coordinator: PaymentCoordinator = Depends(get_coordinator),
):
    """
    TrueLayer redirects here once the user has authorized or cancelled.

    The payment status is reconciled, then the user is sent back to the
    front-end result page with a notify flag.
    """
    if payment_id is None:
        raise BadInput("Invalid input: payment_id parameter missing")

    try:
        record = await coordinator.reconcile_callback(payment_id)
    except (StorageError, UpstreamError) as e:
        raise HTTPException(status_code=500, detail=f"Unable to process bank callback: {e.message}")

    query = urlencode({"uuid": record.local_id, "notify": "true"})
    return RedirectResponse(f"{settings.frontend_result_url}?{query}", status_code=302)


@router.get("/banks")
async def get_banks(coordinator: PaymentCoordinator = Depends(get_coordinator)):
    try:
        body = await coordinator.list_banks()
    except UpstreamError as e:
        raise HTTPException(status_code=400, detail=f"Unable to process getting banks: {e.message}")
    return Response(content=body, media_type="application/json")


@router.get("/payment/{uuid}", response_model=PaymentDataResponse)
async def get_payment_data(uuid: str, coordinator: PaymentCoordinator = Depends(get_coordinator)):
    """Payment data from the local database only."""
    try:
        return _payment_data(await coordinator.get_payment(uuid))
    except StorageError as e:
        raise HTTPException(status_code=400, detail=f"Unable to process getting payment data: {e.message}")
    except EncodingError as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.options("/{path:path}")
async def preflight(path: str):
    """OPTIONS without an Origin header still gets an empty 200."""
    return Response(status_code=200)
