"""
BankLink — open-banking payment backend.

Mediates between the merchant front-end and TrueLayer single immediate
payments: prepares local payments, obtains bank authorization URLs,
reconciles the bank redirect, and exposes payment status.

Start the server:
    uvicorn banklink.main:app --port 3000
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException

from banklink.api.health import router as health_router
from banklink.api.payments import router as payments_router
from banklink.config import load_credentials, settings
from banklink.database import async_session, init_db
from banklink.engine.coordinator import PaymentCoordinator
from banklink.engine.token_cache import TokenCache
from banklink.errors import BadInput
from banklink.providers.truelayer import TrueLayerClient
from banklink.repository.sql import SqlPaymentRepository

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger("banklink.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and wire the coordinator; close the TrueLayer client on shutdown."""
    await init_db()
    credentials = load_credentials(settings)

    upstream = TrueLayerClient(
        settings.auth_base_url,
        settings.pay_base_url,
        timeout=settings.http_timeout_seconds,
    )
    app.state.coordinator = PaymentCoordinator(
        repository=SqlPaymentRepository(async_session),
        upstream=upstream,
        token_cache=TokenCache(upstream, credentials, safety_margin=settings.token_safety_margin_seconds),
    )
    logger.info("Payment coordinator ready (TrueLayer pay API: %s)", settings.pay_base_url)
    try:
        yield
    finally:
        await upstream.aclose()


app = FastAPI(
    title="BankLink",
    description=(
        "Open-banking payment backend. Prepares payments, obtains TrueLayer "
        "authorization URLs and reconciles payment status after the bank redirect."
    ),
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def cors_middleware(request: Request, call_next):
    """Any request carrying an Origin is answered for the front-end origin."""
    origin = request.headers.get("origin")
    if not origin:
        return await call_next(request)

    if request.method == "OPTIONS" and request.url.path.startswith("/api/"):
        return Response(status_code=200, headers={
            "Access-Control-Allow-Origin": settings.cors_origin,
            "Access-Control-Allow-Headers": "Content-Type",
        })

    response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = settings.cors_origin
    return response


def _error(status_code: int, message: str, headers: Optional[dict[str, str]] = None) -> JSONResponse:
    # 4xx are the caller's problem; everything else is ours
    if not 400 <= status_code <= 499:
        logger.error("Error code: %d %s", status_code, message)
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return _error(exc.status_code, str(exc.detail), headers=exc.headers)


@app.exception_handler(BadInput)
async def bad_input_handler(_: Request, exc: BadInput):
    return _error(400, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_: Request, exc: RequestValidationError):
    errors = exc.errors()
    first_error = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first_error.get("loc", []) if p != "body")
    msg = first_error.get("msg", "Validation failed")
    return _error(400, f"Unable to parse request body: {loc + ': ' if loc else ''}{msg}")


@app.exception_handler(Exception)
async def global_exception_handler(_: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content={"message": "An unexpected error occurred."})


app.include_router(health_router)
app.include_router(payments_router)
