"""
Base service class for the prog session engine.

Provides async database session management, repository injection and the
admin permission check shared by every mutating service.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Type

from prog_arc.config import Config
from prog_arc.database.repository import SessionRepository
from prog_arc.utils.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

class BaseService:
    """Base class for all services with async database session management."""

    def __init__(self, session_factory, repository_cls: Type[SessionRepository] = SessionRepository):
        """
        Initialize base service with session factory.

        Args:
            session_factory: Async session factory from Database class
            repository_cls: Repository built around each session
        """
        self.session_factory = session_factory
        self.repository_cls = repository_cls

    @asynccontextmanager
    async def get_repository(self) -> AsyncGenerator[SessionRepository, None]:
        """Provide a transactional repository scope for async database operations."""
        session = self.session_factory()
        try:
            yield self.repository_cls(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def require_admin(self, repo: SessionRepository, caller_id: int, operation: str) -> None:
        """
        Validate that the caller may perform a mutating operation.

        The owner always has permission; anyone else needs an active admin role.

        Raises:
            AuthorizationError: If the caller is not privileged
        """
        if caller_id and caller_id == Config.OWNER_DISCORD_ID:
            return
        if caller_id and await repo.is_active_admin(caller_id):
            return
        logger.warning(f"Rejected {operation} for non-admin caller {caller_id}")
        raise AuthorizationError(caller_id, operation)
