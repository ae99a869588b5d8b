# src/fitbit_exporter/history.py
from __future__ import annotations

import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Optional

from .client import UpstreamClient
from .metrics import MetricsBuffer, utc_today
from .sync import RangeValidationError, sync_range

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILE = Path("fitbit_historical_metrics.prom")
DEFAULT_LOOKBACK_DAYS = 365


def dump_historical_metrics(
    client: UpstreamClient,
    buffer: MetricsBuffer,
    start: Optional[date] = None,
    end: Optional[date] = None,
    output_file: Optional[Path] = None,
    today: Optional[Callable[[], date]] = None,
) -> Path:
    """
    Write daily step counts for [start, end] to a Prometheus text file.

    Defaults to the year ending yesterday (UTC).
    """
    yesterday = (today or utc_today)() - timedelta(days=1)
    end = end or yesterday
    start = start or end - timedelta(days=DEFAULT_LOOKBACK_DAYS)
    output_file = Path(output_file or DEFAULT_OUTPUT_FILE)
    logger.debug("start_date: %s, end_date: %s, output_file: %s", start, end, output_file)

    try:
        result = sync_range(client, buffer, start, end)
    except RangeValidationError as exc:
        raise SystemExit(f"Invalid date range: {exc}")
    if not result.ok:
        raise SystemExit(f"Failed to fetch historical steps {start}..{end}: {result}")

    txt = buffer.render()
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(txt, encoding="utf-8")
    print(f"Wrote {len(result.payload)} days of steps to {output_file}")
    return output_file
