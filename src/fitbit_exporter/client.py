# src/fitbit_exporter/client.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List, Optional, Tuple

import requests

from .token_store import CredentialStore

logger = logging.getLogger(__name__)

API_BASE = "https://api.fitbit.com"
DATE_FORMAT = "%Y-%m-%d"
STEPS_SERIES = "activities-steps"


class FetchStatus(enum.Enum):
    OK = "ok"
    CREDENTIAL_EXPIRED = "credential_expired"
    TRANSPORT_ERROR = "transport_error"
    DECODE_ERROR = "decode_error"


@dataclass(frozen=True)
class FetchResult:
    status: FetchStatus
    payload: Any = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.OK

    @classmethod
    def success(cls, payload: Any) -> "FetchResult":
        return cls(FetchStatus.OK, payload=payload)

    @classmethod
    def expired(cls) -> "FetchResult":
        return cls(FetchStatus.CREDENTIAL_EXPIRED, detail="access token expired")

    @classmethod
    def transport_error(cls, detail: str) -> "FetchResult":
        return cls(FetchStatus.TRANSPORT_ERROR, detail=detail)

    @classmethod
    def decode_error(cls, detail: str) -> "FetchResult":
        return cls(FetchStatus.DECODE_ERROR, detail=detail)

    def __str__(self) -> str:
        return f"{self.status.value} ({self.detail})" if self.detail else self.status.value


@dataclass(frozen=True)
class Endpoint:
    path: str
    series_key: str = STEPS_SERIES


# See https://dev.fitbit.com/build/reference/web-api/activity-timeseries/get-activity-timeseries-by-date/
def steps_today() -> Endpoint:
    return Endpoint("/1/user/-/activities/steps/date/today/1d.json")


def steps_range(start: date, end: date) -> Endpoint:
    return Endpoint(
        f"/1/user/-/activities/steps/date/{start.strftime(DATE_FORMAT)}/{end.strftime(DATE_FORMAT)}.json"
    )


def parse_count(value: Any) -> int:
    """Fitbit sends counts as digit strings ("4321"); accept plain ints too."""
    if isinstance(value, bool):
        raise ValueError(f"not a count: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"negative count: {value}")
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValueError(f"not a count: {value!r}")


def _is_expired(body: Any) -> bool:
    if not isinstance(body, dict):
        return False
    errors = body.get("errors")
    if not isinstance(errors, list):
        return False
    return any(isinstance(e, dict) and e.get("errorType") == "expired_token" for e in errors)


class UpstreamClient:
    """Authenticated reads against the Fitbit Web API. Never renews the token itself."""

    def __init__(
        self,
        store: CredentialStore,
        api_base: str = API_BASE,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ):
        self.store = store
        self.api_base = api_base.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, endpoint: Endpoint) -> FetchResult:
        url = f"{self.api_base}{endpoint.path}"
        logger.debug("Fetching data from endpoint: %s", url)
        credential = self.store.read()
        try:
            r = self.session.get(
                url,
                headers={"Authorization": f"Bearer {credential.access_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            return FetchResult.transport_error(f"request failed: {exc}")

        try:
            body = r.json()
        except ValueError:
            body = None

        if _is_expired(body):
            logger.debug("Access token expired.")
            return FetchResult.expired()
        if not 200 <= r.status_code < 300:
            return FetchResult.transport_error(f"HTTP {r.status_code} from {endpoint.path}")
        if not isinstance(body, dict):
            return FetchResult.decode_error("response body is not a JSON object")
        if not isinstance(body.get(endpoint.series_key), list):
            return FetchResult.decode_error(f"missing '{endpoint.series_key}' list")

        logger.debug("Data fetched successfully")
        return FetchResult.success(body)

    def fetch_range(self, start: date, end: date) -> FetchResult:
        """Daily step counts for [start, end] as a list of (date, steps) on success."""
        logger.debug("Fetching historical steps data from %s to %s", start, end)
        endpoint = steps_range(start, end)
        result = self.fetch(endpoint)
        if not result.ok:
            return result

        rows: List[Tuple[date, int]] = []
        for i, entry in enumerate(result.payload[endpoint.series_key]):
            if not isinstance(entry, dict):
                return FetchResult.decode_error(f"entry {i} is not an object")
            date_str = entry.get("dateTime")
            if not isinstance(date_str, str):
                return FetchResult.decode_error(f"entry {i} has no dateTime")
            try:
                day = datetime.strptime(date_str, DATE_FORMAT).date()
            except ValueError:
                return FetchResult.decode_error(f"entry {i} has bad dateTime {date_str!r}")
            try:
                steps = parse_count(entry.get("value"))
            except ValueError as exc:
                return FetchResult.decode_error(f"entry {i}: {exc}")
            rows.append((day, steps))

        logger.debug("Fetched %d days of historical steps", len(rows))
        return FetchResult.success(rows)
