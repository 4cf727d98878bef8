"""
Wallet point breakdown administration.

A breakdown maps adjusted placement (first..sixth) to wallet points. Exactly
one breakdown is active at a time; the Victory Point grant reads it.
"""

import logging
from typing import List, Sequence

from prog_arc.constants import WalletConstants
from prog_arc.data_models.leaderboard import BreakdownInfo
from prog_arc.database.models import WalletPointBreakdown
from prog_arc.services.base import BaseService
from prog_arc.utils.exceptions import NotFoundError, StateConflictError, ValidationError

logger = logging.getLogger(__name__)


class BreakdownService(BaseService):
    """Create, edit, delete and activate wallet point breakdowns."""

    @staticmethod
    def _validate(name: str, points: Sequence[int]) -> List[int]:
        if not name or not name.strip():
            raise ValidationError("Breakdown name is required")
        points = list(points)
        if len(points) != len(WalletConstants.BREAKDOWN_FIELDS):
            raise ValidationError(
                f"A breakdown needs exactly {len(WalletConstants.BREAKDOWN_FIELDS)} point values"
            )
        for value in points:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError("Point values must be non-negative whole numbers")
        return points

    @staticmethod
    def _apply(breakdown: WalletPointBreakdown, name: str, points: List[int]) -> None:
        breakdown.name = name.strip()
        for field, value in zip(WalletConstants.BREAKDOWN_FIELDS, points):
            setattr(breakdown, field, value)

    async def list_breakdowns(self) -> List[BreakdownInfo]:
        """All breakdowns, active first."""
        async with self.get_repository() as repo:
            return [BreakdownInfo.from_model(b) for b in await repo.list_breakdowns()]

    async def get_active_breakdown(self) -> BreakdownInfo:
        async with self.get_repository() as repo:
            breakdown = await repo.get_active_breakdown()
            if not breakdown:
                raise NotFoundError("Active breakdown")
            return BreakdownInfo.from_model(breakdown)

    async def create_breakdown(self, name: str, points: Sequence[int], caller_id: int) -> BreakdownInfo:
        points = self._validate(name, points)
        async with self.get_repository() as repo:
            await self.require_admin(repo, caller_id, "create_breakdown")
            breakdown = WalletPointBreakdown(active=False)
            self._apply(breakdown, name, points)
            await repo.add_breakdown(breakdown)
            await repo.add_audit_log(caller_id, "breakdown_created", {'name': breakdown.name, 'points': points})
            info = BreakdownInfo.from_model(breakdown)

        logger.info(f"Created wallet breakdown {info.id} '{info.name}': {info.points}")
        return info

    async def update_breakdown(self, breakdown_id: int, name: str, points: Sequence[int],
                               caller_id: int) -> BreakdownInfo:
        points = self._validate(name, points)
        async with self.get_repository() as repo:
            await self.require_admin(repo, caller_id, "update_breakdown")
            breakdown = await repo.get_breakdown(breakdown_id)
            if not breakdown:
                raise NotFoundError("Breakdown", breakdown_id)
            self._apply(breakdown, name, points)
            await repo.add_audit_log(caller_id, "breakdown_updated", {'id': breakdown_id, 'points': points})
            info = BreakdownInfo.from_model(breakdown)

        logger.info(f"Updated wallet breakdown {breakdown_id}: {info.points}")
        return info

    async def delete_breakdown(self, breakdown_id: int, caller_id: int) -> None:
        async with self.get_repository() as repo:
            await self.require_admin(repo, caller_id, "delete_breakdown")
            breakdown = await repo.get_breakdown(breakdown_id)
            if not breakdown:
                raise NotFoundError("Breakdown", breakdown_id)
            if breakdown.active:
                raise StateConflictError("Cannot delete the active breakdown")
            await repo.delete_breakdown(breakdown)
            await repo.add_audit_log(caller_id, "breakdown_deleted", {'id': breakdown_id})

        logger.info(f"Deleted wallet breakdown {breakdown_id}")

    async def set_active_breakdown(self, breakdown_id: int, caller_id: int) -> BreakdownInfo:
        """Activate one breakdown and deactivate every other in the same transaction."""
        async with self.get_repository() as repo:
            await self.require_admin(repo, caller_id, "set_active_breakdown")
            if not await repo.get_breakdown(breakdown_id):
                raise NotFoundError("Breakdown", breakdown_id)
            await repo.activate_breakdown(breakdown_id)
            await repo.add_audit_log(caller_id, "breakdown_activated", {'id': breakdown_id})
            info = BreakdownInfo.from_model(await repo.get_breakdown(breakdown_id))

        logger.info(f"Activated wallet breakdown {breakdown_id}")
        return info
