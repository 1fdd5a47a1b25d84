"""Read-through Redis cache of user records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import redis

from gopher_social.core.settings import settings
from gopher_social.schemas.user import UserResponse

if TYPE_CHECKING:
    from gopher_social.repositories.storage import Storage

logger = logging.getLogger(__name__)

USER_CACHE_TTL_SECONDS = 60 * 60


def user_key(user_id: int) -> str:
    return f"user-{user_id}"


class UserCache:
    """JSON-encoded users keyed by ``user-<id>`` and expired by TTL only.

    Entries are never invalidated explicitly, so role changes may take up to
    ``ttl`` seconds to be observed.
    """

    def __init__(self, client: redis.Redis, ttl: int = USER_CACHE_TTL_SECONDS) -> None:
        self._redis = client
        self.ttl = ttl

    def get(self, user_id: int) -> UserResponse | None:
        """Return the cached user or None on a miss."""
        raw = self._redis.get(user_key(user_id))
        if raw is None:
            return None
        return UserResponse.model_validate_json(raw)

    def set(self, user: UserResponse) -> None:
        """Store ``user`` for ``ttl`` seconds; Redis errors propagate."""
        self._redis.setex(user_key(user.id), self.ttl, user.model_dump_json())


def load_user(user_id: int, storage: Storage, cache: UserCache | None) -> UserResponse:
    """Return the active user ``user_id``, going through the cache when enabled.

    Misses are filled from the store; absent users are not cached.

    Raises:
        RecordNotFoundError: The user does not exist or is inactive.
        redis.RedisError: The cache could not be read or written.
    """
    if cache is None:
        return UserResponse.model_validate(storage.users.get_by_id(user_id))

    cached = cache.get(user_id)
    if cached is not None:
        return cached

    logger.info("fetching user from store id=%s", user_id)
    user = UserResponse.model_validate(storage.users.get_by_id(user_id))
    cache.set(user)
    return user


def get_redis_client() -> redis.Redis:
    """Build a Redis client from the configured address, password and db."""
    return redis.Redis.from_url(
        f"redis://{settings.redis_addr}/{settings.redis_db}",
        password=settings.redis_password or None,
    )


_user_cache: UserCache | None = None


def get_user_cache() -> UserCache | None:
    """Return the process-wide cache, or None when caching is disabled."""
    global _user_cache
    if not settings.redis_enabled:
        return None
    if _user_cache is None:
        _user_cache = UserCache(get_redis_client())
    return _user_cache
