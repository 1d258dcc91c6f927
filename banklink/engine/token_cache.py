"""
Single-slot cache for the TrueLayer access token.

The token is reused until ``expires_in - safety_margin`` seconds after it
was requested. Refreshes are single-flight: the first caller that finds the
slot stale starts one refresh task, every caller arriving while it runs
awaits that same task and gets its token or its exception.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from banklink.audit.logger import log_event
from banklink.config import Credentials
from banklink.providers.base import UpstreamClient

logger = logging.getLogger("banklink.token")

DEFAULT_SAFETY_MARGIN = 10.0


class TokenCache:
    def __init__(
        self,
        client: UpstreamClient,
        credentials: Credentials,
        safety_margin: float = DEFAULT_SAFETY_MARGIN,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._credentials = credentials
        self._safety_margin = max(safety_margin, 0.0)
        self._clock = clock
        self._inflight: Optional[asyncio.Task] = None

        self._value = ""
        self._usable_until = 0.0

    def _cached(self) -> Optional[str]:
        if self._value and self._clock() < self._usable_until:
            return self._value
        return None

    async def get_token(self) -> str:
        """
        Return a usable access token, issuing a new one if needed.

        Raises:
            UpstreamError: If token issuance fails. The slot is left as it was
                and every caller that waited on the failed refresh gets the
                same error.
        """
        token = self._cached()
        if token is not None:
            return token

        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(self._refresh())
            task.add_done_callback(self._refresh_done)
            self._inflight = task

        # One cancelled caller must not cancel the refresh the others await
        return await asyncio.shield(task)

    def _refresh_done(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Access token refresh failed: %s", task.exception())

    async def _refresh(self) -> str:
        requested_at = self._clock()
        issued = await self._client.issue_token(
            self._credentials.client_id,
            self._credentials.client_secret,
        )

        # Short-lived tokens keep at least half their lifetime
        margin = min(self._safety_margin, issued.expires_in / 2)
        self._value = issued.value
        self._usable_until = requested_at + issued.expires_in - margin

        log_event("token_issued", details={"expires_in": issued.expires_in, "margin": margin})
        logger.debug("Access token cached for %.1fs", issued.expires_in - margin)
        return issued.value
