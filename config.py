from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CATALOG_URL = (
    "https://raw.githubusercontent.com/Hipo/university-domains-list/master/world_universities_and_domains.json"
)


def _int_env(name: str, default: int) -> int:
    value = (os.getenv(name) or "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def catalog_url() -> str:
    return os.getenv("UNIMATCH_CATALOG_URL") or DEFAULT_CATALOG_URL


def catalog_seed() -> int:
    return _int_env("UNIMATCH_CATALOG_SEED", 42)


def catalog_scan_limit() -> int:
    return _int_env("UNIMATCH_CATALOG_SCAN_LIMIT", 500)


def http_timeout() -> int:
    return _int_env("UNIMATCH_HTTP_TIMEOUT", 30)


def log_level() -> str:
    return (os.getenv("LOG_LEVEL") or "INFO").upper()
