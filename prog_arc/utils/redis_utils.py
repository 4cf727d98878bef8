"""
Redis connection helpers for the notification queue.

The URL policy lives in Config.get_redis_url_problem; this module turns a
configured URL into a live client or an ExternalDependencyError.
"""

import logging

import redis.asyncio as redis

from prog_arc.config import Config
from prog_arc.utils.exceptions import ExternalDependencyError

logger = logging.getLogger(__name__)


class RedisUtils:
    """Resolve and connect the notification queue's Redis client."""

    @staticmethod
    def get_queue_url() -> str:
        """
        URL of the Redis instance holding the notification queue.

        Raises:
            ExternalDependencyError: If the configured URL fails the security policy
        """
        problem = Config.get_redis_url_problem(Config.REDIS_URL)
        if problem:
            logger.error(f"Refusing to connect to Redis: {problem}")
            raise ExternalDependencyError("redis", problem)

        if not Config.REDIS_URL:
            logger.warning("Development mode: using insecure localhost Redis. Do not use in production!")
            return Config.DEV_REDIS_URL
        return Config.REDIS_URL

    @staticmethod
    async def connect(redis_url: str) -> redis.Redis:
        """
        Open a client and check it answers.

        Raises:
            ExternalDependencyError: If Redis cannot be reached
        """
        client = redis.from_url(redis_url)
        try:
            await client.ping()
        except redis.RedisError as e:
            await client.aclose()
            raise ExternalDependencyError("redis", f"cannot reach Redis: {e}") from e
        logger.info("Connected to Redis notification queue")
        return client
