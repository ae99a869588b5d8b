# src/fitbit_exporter/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .auth import TOKEN_URL
from .client import API_BASE
from .scheduler import ACCESS_TOKEN_LIFETIME, DEFAULT_REFRESH_INTERVAL

REQUIRED_VARS = ("FITBIT_CLIENT_ID", "FITBIT_CLIENT_SECRET", "FITBIT_ACCESS_TOKEN")


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise SystemExit(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    client_id: str
    client_secret: str
    access_token: str
    # Only set with the Authorization Code flow; the Implicit Grant flow has no refresh token.
    refresh_token: Optional[str] = None
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    api_base: str = API_BASE
    token_url: str = TOKEN_URL
    host: str = "0.0.0.0"
    port: int = 8080
    history_days: int = 30
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        missing = [name for name in REQUIRED_VARS if not env.get(name)]
        if missing:
            raise SystemExit(f"Set {', '.join(missing)} in your environment (.env).")

        refresh_interval = _int(env, "FITBIT_REFRESH_INTERVAL_SECONDS", DEFAULT_REFRESH_INTERVAL)
        if not 0 < refresh_interval < ACCESS_TOKEN_LIFETIME:
            raise SystemExit(
                f"FITBIT_REFRESH_INTERVAL_SECONDS must be between 0 and {ACCESS_TOKEN_LIFETIME} (exclusive)."
            )
        history_days = _int(env, "FITBIT_HISTORY_DAYS", 30)
        if history_days < 0:
            raise SystemExit("FITBIT_HISTORY_DAYS must be >= 0.")

        return cls(
            client_id=env["FITBIT_CLIENT_ID"],
            client_secret=env["FITBIT_CLIENT_SECRET"],
            access_token=env["FITBIT_ACCESS_TOKEN"],
            refresh_token=env.get("FITBIT_REFRESH_TOKEN") or None,
            refresh_interval=refresh_interval,
            api_base=env.get("FITBIT_API_BASE") or API_BASE,
            token_url=env.get("FITBIT_TOKEN_URL") or TOKEN_URL,
            host=env.get("FITBIT_EXPORTER_HOST") or "0.0.0.0",
            port=_int(env, "FITBIT_EXPORTER_PORT", 8080),
            history_days=history_days,
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
