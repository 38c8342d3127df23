"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and exposes
project-level configuration constants used across the codebase (e.g.
RECALL_WORKER_URL, HTTP_VERIFY, context cache bounds and the log level).
"""

from __future__ import annotations

import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# Recall worker API
RECALL_WORKER_HOST = os.environ.get("RECALL_WORKER_HOST", "127.0.0.1").strip()
RECALL_WORKER_PORT = _env_int("RECALL_WORKER_PORT", 37777)
RECALL_WORKER_URL = os.environ.get(
    "RECALL_WORKER_URL", f"http://{RECALL_WORKER_HOST}:{RECALL_WORKER_PORT}"
).strip()
RECALL_HTTP_TIMEOUT = _env_float("RECALL_HTTP_TIMEOUT", 10.0)

# Network / HTTP
HTTP_VERIFY = _env_bool("HTTP_VERIFY", False)

# Context cache
CONTEXT_CACHE_MAXSIZE = _env_int("CONTEXT_CACHE_MAXSIZE", 50)
CONTEXT_CACHE_TTL_SECONDS = _env_float("CONTEXT_CACHE_TTL_SECONDS", 600.0)
CONTEXT_CACHE_MAX_TOKENS = _env_int("CONTEXT_CACHE_MAX_TOKENS", 100_000)

# Logging (stderr only; stdout carries the stdio transport)
RECALL_LOG_LEVEL = os.environ.get("RECALL_LOG_LEVEL", "INFO").strip().upper()
