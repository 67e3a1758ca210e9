"""Overstay scanner - periodic sweep flagging allocations past their departure.

Triggered by a scheduler hitting the worker route; one call is one sweep
cycle, never a blocking loop. Each allocation is marked in its own
transaction, so a sweep interrupted half-way leaves every processed
allocation committed and the rest untouched. Re-running a sweep is safe:
already overstayed allocations are no longer candidates, and
mark_overstayed() is a no-op on them anyway.
"""

from __future__ import annotations

import os
from datetime import date, datetime

from hostelly.domain.allocations import mark_overstayed
from hostelly.infra.db import txn
from hostelly.infra.repositories.allocations_repository import find_overdue_allocation_ids
from hostelly.infra.time import as_utc
from hostelly.observability.correlation import ensure_correlation_id
from hostelly.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SCAN_LIMIT = 500


def _scan_limit() -> int:
    return int(os.environ.get("OVERSTAY_SCAN_LIMIT", DEFAULT_SCAN_LIMIT))


def scan_overstays(
    *,
    as_of: date | datetime | None = None,
    limit: int | None = None,
) -> dict:
    """Run one overstay sweep.

    Args:
        as_of: Reference time (default: database now()).
        limit: Max allocations per sweep (default: OVERSTAY_SCAN_LIMIT or 500).

    Returns:
        {
            "as_of": str,        # ISO timestamp used for the sweep
            "scanned": int,      # candidates found
            "overstayed": int,   # transitioned this sweep
            "noop": int,         # already overstayed / no longer overdue
            "failed": int,       # transitions that raised
        }
    """
    correlation_id = ensure_correlation_id()
    limit = limit if limit is not None else _scan_limit()

    with txn() as cur:
        if as_of is None:
            cur.execute("SELECT now()")
            reference = cur.fetchone()[0]
        else:
            reference = as_utc(as_of)
        candidates = find_overdue_allocation_ids(cur, as_of=reference, limit=limit)

    summary = {
        "as_of": reference.isoformat(),
        "scanned": len(candidates),
        "overstayed": 0,
        "noop": 0,
        "failed": 0,
    }

    for allocation_id in candidates:
        try:
            result = mark_overstayed(
                allocation_id=allocation_id,
                as_of=reference,
                correlation_id=correlation_id,
            )
        except Exception:
            # One bad row must not stop the sweep.
            summary["failed"] += 1
            logger.exception(
                "overstay transition failed",
                extra={"extra_fields": {"allocation_id": allocation_id}},
            )
            continue

        if result["status"] == "overstayed":
            summary["overstayed"] += 1
        else:
            summary["noop"] += 1

    logger.info("overstay sweep finished", extra={"extra_fields": summary})
    return summary
