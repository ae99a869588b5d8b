# src/fitbit_exporter/scheduler.py
from __future__ import annotations

import enum
import logging
import threading
from typing import Optional

from .token_store import CredentialStore, Exchange, RenewalOutcome, RenewalStatus

logger = logging.getLogger(__name__)

# Fitbit access tokens live 8h (28800s) by default; refresh well before that.
# https://dev.fitbit.com/build/reference/web-api/developer-guide/authorization/
ACCESS_TOKEN_LIFETIME = 8 * 60 * 60
DEFAULT_REFRESH_INTERVAL = 7 * 60 * 60


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RENEWING = "renewing"


class RenewalScheduler:
    """
    Background task that renews the shared credential every `interval` seconds.

    One attempt per tick, no retries in between. An invalid grant is logged and
    the exporter keeps serving with the old token until an operator supplies a
    new one.
    """

    def __init__(self, store: CredentialStore, exchange: Exchange, interval: float = DEFAULT_REFRESH_INTERVAL):
        if interval <= 0 or interval >= ACCESS_TOKEN_LIFETIME:
            raise ValueError(
                f"refresh interval must be between 0 and {ACCESS_TOKEN_LIFETIME}s (exclusive), got {interval}"
            )
        self.store = store
        self.exchange = exchange
        self.interval = interval
        self.state = SchedulerState.IDLE
        self.last_outcome: Optional[RenewalOutcome] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> RenewalOutcome:
        self.state = SchedulerState.RENEWING
        try:
            outcome = self.store.renew(self.exchange)
        finally:
            self.state = SchedulerState.IDLE

        if outcome.status is RenewalStatus.SUCCESS:
            if not outcome.skipped:
                logger.info("Access token successfully refreshed.")
        elif outcome.status is RenewalStatus.INVALID_GRANT:
            logger.error(
                "Refresh token rejected (invalid_grant): %s. Still serving the previous access token; "
                "set a new FITBIT_REFRESH_TOKEN and restart.",
                outcome.detail,
            )
        else:
            logger.warning("Error refreshing access token, retrying next tick: %s", outcome.detail)
        self.last_outcome = outcome
        return outcome

    def run(self) -> None:
        logger.debug("Renewal loop started (interval=%ss)", self.interval)
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Unexpected error while refreshing access token")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("renewal scheduler already running")
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="token-renewal", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
