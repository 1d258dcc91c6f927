"""
Audit trail for payment lifecycle steps.

Every step the coordinator takes on a payment (prepared, created upstream,
status mirrored, update refused) gets one structured log line with:
  - Payment ID (local uuid)
  - Upstream ID (TrueLayer simp_id)
  - Action (what happened)
  - Details (context, statuses, error messages)

Lines go to the ``banklink.audit`` logger only; nothing is persisted.
"""

import json
import logging
from typing import Any, Optional

logger = logging.getLogger("banklink.audit")


def log_event(
    action: str,
    payment_id: Optional[str] = None,
    upstream_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    level: int = logging.INFO,
) -> None:
    """
    Emit one audit line.

    Args:
        action: What happened (e.g. "payment_prepared", "status_updated").
        payment_id: Local payment id, if known.
        upstream_id: TrueLayer payment id, if known.
        details: Arbitrary context (serialized to JSON, truncated).
        level: Logging level of the line.
    """
    logger.log(
        level,
        "AUDIT | payment=%s upstream=%s action=%s | %s",
        payment_id or "-",
        upstream_id or "-",
        action,
        json.dumps(details, default=str)[:200] if details else "",
    )
