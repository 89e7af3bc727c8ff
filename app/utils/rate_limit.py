"""
Per-client sliding-window limiter for write endpoints.

Configured by RATE_LIMIT_ENABLED and RATE_LIMIT_CHECKOUT_PER_MINUTE (see
create_app). Hits are kept in this process only; a client that goes quiet
for a whole window is forgotten.
"""

from __future__ import annotations
import time
from collections import deque
from functools import wraps
from threading import Lock

from flask import current_app, jsonify, request

WINDOW_SECONDS = 60

_clock = time.monotonic
_lock = Lock()
_hits: dict[str, deque[float]] = {}
_last_sweep = 0.0


def _sweep(now: float) -> None:
    """Drop clients with no hits inside the window. Caller holds _lock."""
    global _last_sweep
    cutoff = now - WINDOW_SECONDS
    for key in [k for k, hits in _hits.items() if not hits or hits[-1] <= cutoff]:
        del _hits[key]
    _last_sweep = now


def is_rate_limited(key: str, limit: int) -> bool:
    """Record a hit for key and return True if it is over limit for the window."""
    if limit <= 0:
        return False
    now = _clock()
    with _lock:
        if now - _last_sweep >= WINDOW_SECONDS:
            _sweep(now)
        hits = _hits.setdefault(key, deque())
        cutoff = now - WINDOW_SECONDS
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if len(hits) >= limit:
            return True
        hits.append(now)
        return False


def tracked_clients() -> int:
    with _lock:
        return len(_hits)


def reset_rate_limits() -> None:
    global _last_sweep
    with _lock:
        _hits.clear()
        _last_sweep = 0.0


def client_key() -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote_addr or "unknown"


def rate_limited(config_key: str, key_prefix: str):
    """Limit a route to app.config[config_key] requests per minute per client IP."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            cfg = current_app.config
            if cfg.get("RATE_LIMIT_ENABLED") and is_rate_limited(
                f"{key_prefix}:{client_key()}", int(cfg.get(config_key) or 0)
            ):
                return jsonify({"error": "rate limit exceeded", "retry_after": WINDOW_SECONDS}), 429
            return fn(*args, **kwargs)

        return wrapper

    return decorator
