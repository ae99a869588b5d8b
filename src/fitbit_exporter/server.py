# src/fitbit_exporter/server.py
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Optional

from flask import Flask, Response

from .client import FetchResult, UpstreamClient
from .metrics import CONTENT_TYPE, MetricsBuffer, utc_today
from .sync import sync_live, sync_range

logger = logging.getLogger(__name__)


def _text_response(txt: str) -> Response:
    return Response(txt, status=200, content_type=CONTENT_TYPE)


def _error_response(msg: str) -> Response:
    logger.error(msg)
    return Response(msg, status=500, content_type="text/plain; charset=utf-8")


def create_app(
    client: UpstreamClient,
    buffer: MetricsBuffer,
    history_days: int = 30,
    today: Optional[Callable[[], date]] = None,
) -> Flask:
    """Create the Flask app Prometheus scrapes."""
    if history_days < 0:
        raise ValueError("history_days must be >= 0")
    today = today or utc_today

    app = Flask(__name__)

    @app.get("/metrics")
    def metrics():
        result: FetchResult = sync_live(client, buffer)
        if not result.ok:
            return _error_response(f"Error updating metrics: {result}")
        return _text_response(buffer.render())

    # Pulls the last `history_days` days up to yesterday straight from the API on every scrape.
    @app.get("/history")
    def history():
        yesterday = today() - timedelta(days=1)
        start = yesterday - timedelta(days=history_days)
        result = sync_range(client, buffer, start, yesterday)
        if not result.ok:
            return _error_response(f"Error fetching historical metrics: {result}")
        return _text_response(buffer.render())

    return app


def run_server(app: Flask, host: str = "0.0.0.0", port: int = 8080) -> None:
    logger.info("Server running on http://%s:%d", host, port)
    app.run(host=host, port=port, threaded=True)
