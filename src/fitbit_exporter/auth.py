# src/fitbit_exporter/auth.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .token_store import Credential, RenewalOutcome

logger = logging.getLogger(__name__)

TOKEN_URL = "https://api.fitbit.com/oauth2/token"


def _is_invalid_grant(body: Any) -> bool:
    if not isinstance(body, dict):
        return False
    if body.get("error") == "invalid_grant":
        return True
    errors = body.get("errors")
    if isinstance(errors, list):
        return any(isinstance(e, dict) and e.get("errorType") == "invalid_grant" for e in errors)
    return False


class RefreshTokenExchange:
    """Exchange the refresh token for a new access/refresh pair (refresh_token grant only)."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = TOKEN_URL,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def __call__(self, credential: Credential) -> RenewalOutcome:
        logger.debug("Refreshing access token...")
        data: Dict[str, str] = {
            "grant_type": "refresh_token",
            "refresh_token": credential.refresh_token or "",
        }
        try:
            r = self.session.post(
                self.token_url,
                data=data,
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            return RenewalOutcome.transient_failure(f"token request failed: {exc}")

        try:
            body = r.json()
        except ValueError:
            body = None

        if _is_invalid_grant(body):
            # Fitbit refresh tokens are single-use; a rotated-away or revoked one lands here.
            return RenewalOutcome.invalid_grant(f"{r.status_code}: invalid_grant")
        if not 200 <= r.status_code < 300:
            return RenewalOutcome.transient_failure(f"token endpoint returned {r.status_code}")
        if not isinstance(body, dict) or not body.get("access_token"):
            return RenewalOutcome.transient_failure("token response missing access_token")

        logger.debug("Access token successfully refreshed (user_id=%s)", body.get("user_id"))
        return RenewalOutcome.success(Credential(body["access_token"], body.get("refresh_token")))
