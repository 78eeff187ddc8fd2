from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def create_redis_client() -> Redis | None:
    """Build a client from settings, or None when no Redis URL is configured."""
    settings = get_settings()
    if not settings.redis_url:
        return None
    try:
        return Redis.from_url(settings.redis_url)
    except (RedisError, ValueError) as exc:
        logger.warning("redis.unavailable", error=str(exc))
        return None
