# src/fitbit_exporter/sync.py
from __future__ import annotations

import logging
from datetime import date

from .client import STEPS_SERIES, FetchResult, FetchStatus, UpstreamClient, parse_count, steps_today
from .metrics import MetricsBuffer

logger = logging.getLogger(__name__)


class RangeValidationError(ValueError):
    """Start day after end day; raised before any upstream call."""


def sync_live(client: UpstreamClient, buffer: MetricsBuffer) -> FetchResult:
    """Fetch today's step count and store it as the live point."""
    result = client.fetch(steps_today())
    if not result.ok:
        if result.status is FetchStatus.CREDENTIAL_EXPIRED:
            logger.error("Access token expired during a fetch operation")
        return result

    try:
        steps = parse_count(result.payload[STEPS_SERIES][0]["value"])
    except (IndexError, KeyError, TypeError, ValueError) as exc:
        return FetchResult.decode_error(f"no usable step count in response: {exc}")

    logger.debug("Fetched steps: %d", steps)
    buffer.upsert_live(steps)
    return FetchResult.success(steps)


def sync_range(client: UpstreamClient, buffer: MetricsBuffer, start: date, end: date) -> FetchResult:
    """Fetch daily step counts for [start, end] and store each as a timed point."""
    if start > end:
        raise RangeValidationError(f"start date {start} is after end date {end}")

    result = client.fetch_range(start, end)
    if not result.ok:
        return result

    for day, steps in result.payload:
        logger.debug("date: %s, steps: %d", day, steps)
        buffer.upsert_timed(day, steps)
    return result
