"""
Payment coordinator — keeps local payments and TrueLayer payments aligned.

The flow for a payment:

  1. prepare              — local ``unpaid`` record, no upstream call
  2. request_payment_url  — create the payment upstream, link simp_id to
                            the local record, hand back the bank auth URI
  3. reconcile_callback   — after the bank redirect, fetch the upstream
                            status and mirror it onto the local record

Status mirroring never leaves a terminal state (succeeded, failed,
cancelled). The coordinator does not drive the state machine itself;
whatever TrueLayer reports is copied, subject to that guard.
"""

import logging

from banklink.audit.logger import log_event
from banklink.engine.token_cache import TokenCache
from banklink.errors import StorageError
from banklink.models.enums import PaymentStatus, is_terminal, parse_status
from banklink.providers.base import CreatePaymentRequest, UpstreamClient
from banklink.repository.base import PaymentRecord, PaymentRepository

logger = logging.getLogger("banklink.coordinator")


class PaymentCoordinator:
    def __init__(
        self,
        repository: PaymentRepository,
        upstream: UpstreamClient,
        token_cache: TokenCache,
    ):
        self._repository = repository
        self._upstream = upstream
        self._token_cache = token_cache

    async def prepare(self, receiver_id: str, amount: int) -> str:
        """Create a local ``unpaid`` payment and return its id."""
        local_id = await self._repository.insert(receiver_id, amount)
        log_event("payment_prepared", payment_id=local_id, details={
            "receiver_id": receiver_id,
            "amount": amount,
        })
        return local_id

    async def request_payment_url(self, request: CreatePaymentRequest) -> str:
        """
        Create the payment at TrueLayer and return the bank authorization URI.

        If linking the new simp_id to the local record fails, the upstream
        payment is left orphaned (there is no way to delete it) and the
        storage error is raised to the caller.
        """
        token = await self._token_cache.get_token()
        authorization = await self._upstream.create_payment(token, request)

        try:
            await self._repository.attach_upstream(request.uuid, authorization.upstream_id)
        except StorageError as e:
            log_event(
                "upstream_mapping_failed",
                payment_id=request.uuid,
                upstream_id=authorization.upstream_id,
                details={"error": str(e)},
                level=logging.ERROR,
            )
            raise

        log_event("upstream_payment_created", payment_id=request.uuid, upstream_id=authorization.upstream_id, details={
            "amount": request.amount,
            "currency": request.currency,
        })
        return authorization.auth_uri

    async def reconcile_callback(self, upstream_id: str) -> PaymentRecord:
        """
        Mirror the upstream status onto the local record.

        Returns the record as it was read *before* the update; the caller
        redirects the user, who re-reads the payment afterwards.
        """
        token = await self._token_cache.get_token()
        raw_status = await self._upstream.get_payment_status(token, upstream_id)
        record = await self._repository.get_by_upstream_id(upstream_id)

        status = parse_status(raw_status)
        if not isinstance(status, PaymentStatus):
            logger.warning("Unrecognised TrueLayer status %r for payment %s", raw_status, record.local_id)

        if is_terminal(record.status):
            if raw_status != record.status:
                log_event("status_update_skipped", payment_id=record.local_id, upstream_id=upstream_id, details={
                    "stored": record.status,
                    "reported": raw_status,
                })
            return record

        await self._repository.update_status(upstream_id, raw_status)
        log_event("status_updated", payment_id=record.local_id, upstream_id=upstream_id, details={
            "from": record.status,
            "to": raw_status,
        })
        return record

    async def list_banks(self) -> bytes:
        return await self._upstream.list_providers()

    async def get_payment(self, local_id: str) -> PaymentRecord:
        return await self._repository.get_by_local_id(local_id)
