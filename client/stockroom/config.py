# client/stockroom/config.py
from __future__ import annotations
import os


# Placeholder left in freshly deployed installations
API_URL_PLACEHOLDER = "COLE_SUA_URL_AQUI"


class Config:
    # Remote store endpoint (spreadsheet-backed RPC); empty means "not configured"
    API_URL = os.environ.get("STOCKROOM_API_URL", "")

    # SQLite file holding the offline snapshot and the session key
    LOCAL_DB_URL = os.environ.get(
        "STOCKROOM_LOCAL_DB_URL",  # optional alternative location
        "sqlite:///stockroom.sqlite3",  # default local location
    )

    # Freshness window before a background refresh is triggered
    CACHE_TTL_SECONDS = float(os.environ.get("STOCKROOM_CACHE_TTL_SECONDS", "300"))

    # Hard ceiling for a snapshot fetch
    FETCH_TIMEOUT_SECONDS = float(os.environ.get("STOCKROOM_FETCH_TIMEOUT_SECONDS", "6"))
    MUTATION_TIMEOUT_SECONDS = float(os.environ.get("STOCKROOM_MUTATION_TIMEOUT_SECONDS", "30"))
    PING_TIMEOUT_SECONDS = float(os.environ.get("STOCKROOM_PING_TIMEOUT_SECONDS", "5"))

    # Salt used by credentials hashed before bcrypt was adopted
    LEGACY_PASSWORD_SALT = os.environ.get(
        "STOCKROOM_LEGACY_PASSWORD_SALT",
        "DTIC_ALMOXARIFADO_SECURE_SALT_2026",
    )
    MIN_PASSWORD_LENGTH = int(os.environ.get("STOCKROOM_MIN_PASSWORD_LENGTH", "8"))


def is_configured_url(url: str | None) -> bool:
    """An endpoint is usable only if it looks like http(s) and is not the placeholder."""
    if not url:
        return False
    url = url.strip()
    return url.startswith("http") and API_URL_PLACEHOLDER not in url
