"""
Notification dispatch for session events.

Announcements are fire-and-forget: a delivery failure is raised as
ExternalDependencyError by the backend and downgraded to a warning by
safe_notify, so it never fails the finalize or Victory Point commit that
triggered it.

Backends:
- DiscordWebhookNotifier posts an embed to a channel webhook
- RedisQueueNotifier pushes a JSON message for the Discord bot worker
- NullNotifier only logs (development and tests)
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp
import discord
import redis.asyncio as redis

from prog_arc.config import Config
from prog_arc.constants import NotificationEvents, UIConstants
from prog_arc.utils.exceptions import ExternalDependencyError
from prog_arc.utils.redis_utils import RedisUtils

logger = logging.getLogger(__name__)


class NotificationDispatcher(ABC):
    """Delivers session announcements to players."""

    @abstractmethod
    async def notify(self, event_type: str, session_id: int, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Deliver one announcement.

        Raises:
            ExternalDependencyError: If the backend could not deliver it
        """
        pass


class NullNotifier(NotificationDispatcher):
    """Logs announcements without delivering them."""

    async def notify(self, event_type: str, session_id: int, details: Optional[Dict[str, Any]] = None) -> None:
        logger.debug(f"Notifications disabled, skipping {event_type} for session {session_id}")


class DiscordWebhookNotifier(NotificationDispatcher):
    """Posts an embed per event to a Discord channel webhook."""

    TITLES = {
        NotificationEvents.STANDINGS: f"{UIConstants.TROPHY_EMOJI} Standings Finalized",
        NotificationEvents.LEADERBOARD: f"{UIConstants.TROPHY_EMOJI} Victory Point Awarded",
        NotificationEvents.WALLET_UPDATE: f"{UIConstants.WALLET_EMOJI} Wallets Updated",
    }
    COLORS = {
        NotificationEvents.STANDINGS: UIConstants.SUCCESS_COLOR,
        NotificationEvents.LEADERBOARD: UIConstants.GOLD_RANK_COLOR,
    }

    def __init__(self, webhook_url: str):
        self.webhook_url = webhook_url

    def build_embed(self, event_type: str, session_id: int, details: Optional[Dict[str, Any]] = None) -> discord.Embed:
        details = details or {}
        session_label = details.get('session_number', session_id)
        embed = discord.Embed(
            title=self.TITLES.get(event_type, event_type),
            description=f"Session {session_label}",
            color=self.COLORS.get(event_type, UIConstants.DEFAULT_EMBED_COLOR)
        )
        for name, value in details.items():
            if name == 'session_number':
                continue
            embed.add_field(name=name.replace('_', ' ').title(), value=str(value), inline=False)
        return embed

    async def notify(self, event_type: str, session_id: int, details: Optional[Dict[str, Any]] = None) -> None:
        embed = self.build_embed(event_type, session_id, details)
        try:
            async with aiohttp.ClientSession() as http_session:
                webhook = discord.Webhook.from_url(self.webhook_url, session=http_session)
                await webhook.send(embed=embed)
        except (discord.HTTPException, aiohttp.ClientError, ValueError) as e:
            raise ExternalDependencyError("discord webhook", str(e)) from e
        logger.info(f"Posted {event_type} notification for session {session_id}")


class RedisQueueNotifier(NotificationDispatcher):
    """Queues announcements on a Redis list for the Discord bot to deliver."""

    def __init__(self, queue_key: str, client: Optional[redis.Redis] = None):
        self.queue_key = queue_key
        self._client = client

    async def _get_client(self) -> redis.Redis:
        """Connect on first use; a failed connect is retried on the next notify"""
        if self._client is None:
            self._client = await RedisUtils.connect(RedisUtils.get_queue_url())
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def notify(self, event_type: str, session_id: int, details: Optional[Dict[str, Any]] = None) -> None:
        message = json.dumps({
            'type': event_type,
            'payload': {'session_id': session_id, **(details or {})},
        })
        client = await self._get_client()
        try:
            await client.rpush(self.queue_key, message)
        except redis.RedisError as e:
            raise ExternalDependencyError("redis", str(e)) from e
        logger.info(f"Queued {event_type} notification for session {session_id}")


def build_dispatcher() -> NotificationDispatcher:
    """Pick the notification backend from configuration."""
    if not Config.NOTIFICATIONS_ENABLED:
        return NullNotifier()
    if Config.NOTIFICATION_BACKEND == 'redis':
        return RedisQueueNotifier(Config.NOTIFICATION_QUEUE_KEY)
    return DiscordWebhookNotifier(Config.DISCORD_WEBHOOK_URL)


async def safe_notify(
    dispatcher: NotificationDispatcher,
    event_type: str,
    session_id: int,
    details: Optional[Dict[str, Any]] = None
) -> bool:
    """
    Deliver an announcement, logging instead of raising on failure.

    Returns:
        True if the backend accepted the announcement
    """
    try:
        await dispatcher.notify(event_type, session_id, details)
        return True
    except ExternalDependencyError as e:
        logger.warning(f"Notification {event_type} for session {session_id} failed: {e}")
    except Exception:
        logger.warning(f"Unexpected error sending {event_type} for session {session_id}", exc_info=True)
    return False
