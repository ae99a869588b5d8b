#!/usr/bin/env python3
# src/fitbit_exporter/cli.py
from __future__ import annotations

import argparse
import logging
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .auth import RefreshTokenExchange
from .client import DATE_FORMAT, UpstreamClient
from .config import Settings
from .history import dump_historical_metrics
from .metrics import MetricsBuffer
from .scheduler import RenewalScheduler
from .server import create_app, run_server
from .token_store import CredentialStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Dates must be YYYY-MM-DD") from exc


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="fitbit-exporter",
        description="Serve Fitbit step counts for Prometheus, or dump historical counts to a .prom file.",
    )
    p.add_argument(
        "-d",
        "--dump-historical-metrics",
        action="store_true",
        help="Dump historical metrics to a file instead of running as a server.",
    )
    p.add_argument(
        "-s", "--start-date", type=parse_date, help="Start date for the dump (inclusive). Defaults to 1 year ago."
    )
    p.add_argument("-e", "--end-date", type=parse_date, help="End date for the dump (inclusive). Defaults to yesterday.")
    p.add_argument(
        "-o", "--output-file", type=Path, help="Output file for the dump. Defaults to fitbit_historical_metrics.prom."
    )
    p.add_argument("--log-level", help="Logging level (overrides LOG_LEVEL).")
    args = p.parse_args(argv)
    if not args.dump_historical_metrics and (args.start_date or args.end_date or args.output_file):
        p.error("--start-date, --end-date and --output-file require --dump-historical-metrics")
    return args


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()
    args = parse_args(argv)
    settings = Settings.from_env()
    configure_logging(args.log_level or settings.log_level)

    store = CredentialStore(settings.access_token, settings.refresh_token)
    client = UpstreamClient(store, api_base=settings.api_base)
    buffer = MetricsBuffer()

    if args.dump_historical_metrics:
        dump_historical_metrics(client, buffer, args.start_date, args.end_date, args.output_file)
        return

    if not settings.refresh_token:
        logger.warning("FITBIT_REFRESH_TOKEN not set; the access token will not be refreshed.")
    exchange = RefreshTokenExchange(settings.client_id, settings.client_secret, token_url=settings.token_url)
    scheduler = RenewalScheduler(store, exchange, settings.refresh_interval)
    scheduler.start()
    try:
        run_server(create_app(client, buffer, history_days=settings.history_days), settings.host, settings.port)
    finally:
        scheduler.stop(timeout=5)


if __name__ == "__main__":
    main()
