"""Read-through cache for offers, nearby listings and user profiles.

The cache is a side channel: every operation degrades to a miss or a no-op
when Redis is not configured or fails, so callers always fall back to the
database.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

import redis

from lastmile.core.config import settings

logger = logging.getLogger(__name__)

_cache: "Cache | None" = None


class Cache:
    """Thin JSON wrapper over a redis client with static per-kind TTLs."""

    def __init__(self, client: Any | None, prefix: str = "", ttls: dict[str, int] | None = None) -> None:
        self.client = client
        self.prefix = prefix
        self.ttls = dict(ttls or {})

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get_json(self, key: str) -> Any | None:
        if self.client is None:
            return None
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError:
            logger.warning("[CACHE] get failed for key=%s; reading from database", key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("[CACHE] Dropping undecodable entry key=%s", key)
            self.delete(key)
            return None

    def set_json(self, kind: str, key: str, value: Any) -> None:
        if self.client is None:
            return
        ttl = self.ttls.get(kind, 300)
        try:
            self.client.setex(self._key(key), ttl, json.dumps(value))
        except (redis.RedisError, TypeError, ValueError):
            logger.warning("[CACHE] set failed for key=%s", key, exc_info=True)

    def delete(self, *keys: str) -> None:
        if self.client is None or not keys:
            return
        try:
            self.client.delete(*(self._key(key) for key in keys))
        except redis.RedisError:
            logger.warning("[CACHE] delete failed for keys=%s", keys, exc_info=True)

    def delete_pattern(self, pattern: str) -> None:
        if self.client is None:
            return
        try:
            matched = list(self.client.scan_iter(match=self._key(pattern)))
            if matched:
                self.client.delete(*matched)
        except redis.RedisError:
            logger.warning("[CACHE] pattern delete failed for pattern=%s", pattern, exc_info=True)


def offer_key(offer_id: int) -> str:
    return f"offer:{offer_id}"


def user_profile_key(user_id: int) -> str:
    return f"user:profile:{user_id}"


NEARBY_PATTERN = "offers:nearby:*"


def nearby_key(lat: float, lng: float, radius_km: float, filters: dict[str, Any]) -> str:
    """Key for one nearby query; filters are hashed in a stable order."""
    digest = hashlib.sha1(json.dumps(filters, sort_keys=True, default=str).encode("utf-8")).hexdigest()[:16]
    return f"offers:nearby:{lat}:{lng}:{radius_km}:{digest}"


def invalidate_offer(cache: Cache, offer_id: int, business_id: int | None = None, rider_id: int | None = None) -> None:
    """Drop every key that may hold a stale copy of an offer."""
    keys = [offer_key(offer_id)]
    if business_id is not None:
        keys.append(user_profile_key(business_id))
    if rider_id is not None:
        keys.append(user_profile_key(rider_id))
    cache.delete(*keys)
    cache.delete_pattern(NEARBY_PATTERN)


def build_cache() -> Cache:
    client = None
    if settings.redis_url:
        client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=0.5,
            socket_timeout=0.5,
        )
    return Cache(client, prefix=settings.cache_key_prefix, ttls=settings.cache_ttl_seconds)


def get_cache() -> Cache:
    """Return the process-wide cache, creating it on first use."""
    global _cache
    if _cache is None:
        _cache = build_cache()
    return _cache


def close_cache() -> None:
    global _cache
    if _cache is not None and _cache.client is not None:
        _cache.client.close()
    _cache = None
