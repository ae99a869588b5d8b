# src/fitbit_exporter/token_store.py
from __future__ import annotations

import enum
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    access_token: str
    refresh_token: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.access_token:
            raise ValueError("access_token must be a non-empty string")

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks.
        return f"Credential(access_token=***, refresh_token={'***' if self.refresh_token else None})"


class RenewalStatus(enum.Enum):
    SUCCESS = "success"
    INVALID_GRANT = "invalid_grant"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass(frozen=True)
class RenewalOutcome:
    """Result of one refresh-token exchange attempt."""

    status: RenewalStatus
    credential: Optional[Credential] = None
    detail: str = ""
    skipped: bool = False

    @classmethod
    def success(cls, credential: Credential) -> "RenewalOutcome":
        return cls(RenewalStatus.SUCCESS, credential=credential)

    @classmethod
    def invalid_grant(cls, detail: str = "") -> "RenewalOutcome":
        return cls(RenewalStatus.INVALID_GRANT, detail=detail)

    @classmethod
    def transient_failure(cls, detail: str) -> "RenewalOutcome":
        return cls(RenewalStatus.TRANSIENT_FAILURE, detail=detail)

    @classmethod
    def skipped_noop(cls) -> "RenewalOutcome":
        return cls(RenewalStatus.SUCCESS, detail="no refresh token configured", skipped=True)

    @property
    def ok(self) -> bool:
        return self.status is RenewalStatus.SUCCESS


Exchange = Callable[[Credential], RenewalOutcome]


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class CredentialStore:
    """
    Holds the current Fitbit access/refresh token pair in memory.

    Fetches call read() for a snapshot; the renewal task calls renew() which
    swaps both tokens in one step under the exclusive lock. Nothing is written
    to disk: a restart needs a fresh FITBIT_ACCESS_TOKEN / FITBIT_REFRESH_TOKEN.
    """

    def __init__(self, access_token: str, refresh_token: Optional[str] = None):
        self._credential = Credential(access_token, refresh_token or None)
        self._lock = ReadWriteLock()

    def read(self) -> Credential:
        with self._lock.read():
            return self._credential

    def renew(self, exchange: Exchange) -> RenewalOutcome:
        with self._lock.write():
            current = self._credential
            if not current.refresh_token:
                logger.warning("Refresh token is not set. Skipping access token refresh.")
                return RenewalOutcome.skipped_noop()

            outcome = exchange(current)
            if outcome.ok and outcome.credential is not None:
                new = outcome.credential
                if not new.refresh_token:
                    # Token endpoint did not rotate the refresh token; keep ours.
                    new = Credential(new.access_token, current.refresh_token)
                self._credential = new
                logger.debug("Stored renewed credential")
                return RenewalOutcome.success(new)
            if outcome.ok:
                return RenewalOutcome.transient_failure("exchange reported success without a credential")
            return outcome
