"""
Redis read cache. Misses and Redis outages both fall through to the database.
"""

import json
import logging
import os

import redis
from flask import current_app, has_app_context

log = logging.getLogger(__name__)

REDIS_URL = os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0")


def init_cache(app) -> None:
    client = None
    if app.config.get("CACHE_ENABLED"):
        client = redis.Redis.from_url(
            app.config.get("REDIS_URL") or REDIS_URL,
            decode_responses=True,
            socket_timeout=1,
            socket_connect_timeout=1,
        )
    app.extensions["redis"] = client


def r():
    if not has_app_context():
        return None
    return current_app.extensions.get("redis")


def cache_get_json(key: str):
    client = r()
    if client is None:
        return None
    try:
        cached = client.get(key)
    except redis.RedisError as e:
        log.warning("cache get %s failed: %s", key, e)
        return None
    return json.loads(cached) if cached else None


def cache_set_json(key: str, value, ttl: int) -> None:
    client = r()
    if client is None:
        return
    try:
        client.setex(key, ttl, json.dumps(value, default=str))
    except redis.RedisError as e:
        log.warning("cache set %s failed: %s", key, e)


def cache_delete(*keys: str) -> None:
    client = r()
    if client is None or not keys:
        return
    try:
        client.delete(*keys)
    except redis.RedisError as e:
        log.warning("cache delete %s failed: %s", keys, e)


def stats_key(project_id: str | None) -> str:
    return f"donations:stats:{project_id or 'all'}:v1"
