import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

class Config:
    """Session engine configuration settings"""

    # Discord settings
    OWNER_DISCORD_ID = int(os.getenv('OWNER_DISCORD_ID', 0))
    DISCORD_WEBHOOK_URL = os.getenv('DISCORD_WEBHOOK_URL', '')

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///prog_arc.db')

    # Notification settings
    NOTIFICATIONS_ENABLED = os.getenv('NOTIFICATIONS_ENABLED', 'False').lower() == 'true'
    NOTIFICATION_BACKEND = os.getenv('NOTIFICATION_BACKEND', 'webhook')  # "webhook" or "redis"
    NOTIFICATION_QUEUE_KEY = os.getenv('NOTIFICATION_QUEUE_KEY', 'prog_arc:notifications')
    REDIS_URL = os.getenv('REDIS_URL', '')
    DEV_REDIS_URL = 'redis://localhost:6379'

    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'

    # Tournament settings
    GAMES_TO_WIN_MATCH = 2      # Best of 3

    @classmethod
    def get_async_database_url(cls) -> str:
        """Get the database URL with the async sqlite driver substituted"""
        database_url = cls.DATABASE_URL
        if database_url.startswith('sqlite:///'):
            database_url = database_url.replace('sqlite:///', 'sqlite+aiosqlite:///')
        return database_url

    @classmethod
    def get_redis_url_problem(cls, redis_url: str) -> Optional[str]:
        """Reason a Redis URL is unacceptable in the current mode, or None"""
        if cls.DEBUG:
            return None  # Development: any URL, empty means localhost
        if not redis_url:
            return "REDIS_URL is required outside debug mode"
        if not redis_url.startswith('rediss://'):
            return "Production Redis must use the rediss:// (TLS) protocol"
        if '@' not in redis_url:
            return "Production Redis must include authentication credentials"
        return None

    @classmethod
    def validate(cls):
        """Validate that required configuration is present"""
        if not cls.DATABASE_URL:
            raise ValueError("DATABASE_URL is required")
        if cls.NOTIFICATION_BACKEND not in ('webhook', 'redis'):
            raise ValueError("NOTIFICATION_BACKEND must be 'webhook' or 'redis'")
        if cls.NOTIFICATIONS_ENABLED and cls.NOTIFICATION_BACKEND == 'webhook' and not cls.DISCORD_WEBHOOK_URL:
            raise ValueError("DISCORD_WEBHOOK_URL is required when webhook notifications are enabled")
        if cls.NOTIFICATIONS_ENABLED and cls.NOTIFICATION_BACKEND == 'redis':
            problem = cls.get_redis_url_problem(cls.REDIS_URL)
            if problem:
                raise ValueError(problem)
