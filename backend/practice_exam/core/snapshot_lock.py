"""Redis connection and the per-(user, paper) snapshot lock.

The lock serializes snapshot materializers across processes so the question
source is called once per (paper, user). It is an optimisation: when Redis
is disabled or failing the lock fails open and the snapshot unique
constraint picks the winner.
"""

import uuid
from collections.abc import Generator
from contextlib import contextmanager

import redis
from redis.exceptions import RedisError

from practice_exam.core.config import settings
from practice_exam.core.logging import get_logger

logger = get_logger(__name__)

_client: redis.Redis | None = None

# Delete the key only while it still carries our owner token, so a holder
# whose TTL ran out never releases the next holder's lock.
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


def get_redis() -> redis.Redis | None:
    """Shared client, or None when Redis is disabled or unreachable."""
    global _client

    if not settings.REDIS_ENABLED:
        return None
    if _client is not None:
        return _client

    if not settings.REDIS_URL:
        if settings.REDIS_REQUIRED:
            raise ValueError("REDIS_URL must be set when REDIS_REQUIRED=true")
        logger.warning("redis_not_configured", extra={"event": "redis_not_configured"})
        return None

    client = redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=1,
        socket_timeout=1,
        health_check_interval=30,
    )
    try:
        client.ping()
    except RedisError as e:
        if settings.REDIS_REQUIRED:
            raise
        logger.warning("redis_unavailable", extra={"event": "redis_unavailable", "error": str(e)})
        return None

    _client = client
    logger.info("redis_connected", extra={"event": "redis_connected"})
    return _client


def init_redis() -> None:
    """Connect at startup; only fatal when Redis is required."""
    try:
        get_redis()
    except (RedisError, ValueError):
        if settings.REDIS_REQUIRED:
            raise


def redis_ping() -> bool:
    client = get_redis()
    if client is None:
        return False
    try:
        return bool(client.ping())
    except RedisError:
        return False


def snapshot_lock_key(user_id: str, paper_id: int) -> str:
    return f"exam:snapshot:{user_id}:{paper_id}"


@contextmanager
def snapshot_lock(user_id: str, paper_id: int, ttl_seconds: int | None = None) -> Generator[bool, None, None]:
    """
    Hold the snapshot lock for (user, paper) while the block runs.

    Yields True when this caller may materialize the snapshot and False when
    another process holds the lock. Yields True without locking when Redis
    is disabled or erroring.
    """
    client = get_redis()
    if client is None:
        yield True
        return

    key = snapshot_lock_key(user_id, paper_id)
    owner = uuid.uuid4().hex
    ttl = ttl_seconds or settings.SNAPSHOT_LOCK_TTL_SECONDS
    log_fields = {"user_id": user_id, "paper_id": paper_id}

    try:
        acquired = bool(client.set(key, owner, nx=True, ex=ttl))
    except RedisError as e:
        logger.warning(
            "snapshot_lock_unavailable",
            extra={"event": "snapshot_lock_unavailable", **log_fields, "error": str(e)},
        )
        yield True
        return

    if not acquired:
        logger.debug("snapshot_lock_busy", extra={"event": "snapshot_lock_busy", **log_fields})

    try:
        yield acquired
    finally:
        if acquired:
            try:
                client.eval(_RELEASE_SCRIPT, 1, key, owner)
            except RedisError as e:
                logger.warning(
                    "snapshot_lock_release_failed",
                    extra={"event": "snapshot_lock_release_failed", **log_fields, "error": str(e)},
                )
