"""
Session repository.

Explicit persistence interface handed to the ranking, finalize and offer
services. A repository wraps exactly one AsyncSession; the caller owns the
transaction boundary. The guarded writes (claim_placements,
advance_offer, claim_victory_point) are conditional UPDATEs whose row count
tells the caller whether it won the race.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from prog_arc.constants import PlacementConstants, WalletConstants
from prog_arc.data_models.standings import MatchResult
from prog_arc.database.models import (
    Player, ProgSession, Pairing, VictoryPoint, Wallet, WalletTransaction,
    WalletPointBreakdown, AdminRole, AuditLog
)


class SessionRepository:
    """Data access for sessions, pairings, grants, wallets and breakdowns."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Sessions and pairings
    # ------------------------------------------------------------------

    async def get_session(self, session_id: int, for_update: bool = False) -> Optional[ProgSession]:
        query = select(ProgSession).where(ProgSession.id == session_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_active_session(self) -> Optional[ProgSession]:
        result = await self.session.execute(
            select(ProgSession).where(ProgSession.active == True)
        )
        return result.scalars().first()

    async def list_sessions(self) -> List[ProgSession]:
        result = await self.session.execute(
            select(ProgSession).order_by(ProgSession.date.desc(), ProgSession.number.desc())
        )
        return list(result.scalars().all())

    async def get_match_results(self, session_id: int) -> List[MatchResult]:
        result = await self.session.execute(
            select(Pairing)
            .where(Pairing.session_id == session_id)
            .order_by(Pairing.round, Pairing.id)
        )
        return [MatchResult.from_pairing(pairing) for pairing in result.scalars().all()]

    async def claim_placements(self, session_id: int, player_ids: List[int]) -> bool:
        """Write the top placements only if none are set yet"""
        values = dict(zip(PlacementConstants.PLACEMENT_FIELDS, player_ids))
        result = await self.session.execute(
            update(ProgSession)
            .where(ProgSession.id == session_id, ProgSession.first.is_(None))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def advance_offer(self, session_id: int, from_rank: int) -> bool:
        """Move Offered(from_rank) to Offered(from_rank + 1) if still current"""
        result = await self.session.execute(
            update(ProgSession)
            .where(
                ProgSession.id == session_id,
                ProgSession.offer_rank == from_rank,
                ProgSession.victory_points_assigned == False
            )
            .values(offer_rank=from_rank + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def claim_victory_point(self, session_id: int, expected_rank: int) -> bool:
        """Flip both assignment flags if the Victory Point is still offered at expected_rank"""
        result = await self.session.execute(
            update(ProgSession)
            .where(
                ProgSession.id == session_id,
                ProgSession.offer_rank == expected_rank,
                ProgSession.victory_points_assigned == False
            )
            .values(victory_points_assigned=True, wallet_points_assigned=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ------------------------------------------------------------------
    # Players and Victory Points
    # ------------------------------------------------------------------

    async def get_players(self, player_ids: Iterable[int]) -> Dict[int, Player]:
        player_ids = list(player_ids)
        if not player_ids:
            return {}
        result = await self.session.execute(
            select(Player).where(Player.id.in_(player_ids))
        )
        return {player.id: player for player in result.scalars()}

    async def list_players(self) -> List[Player]:
        result = await self.session.execute(select(Player).order_by(Player.name))
        return list(result.scalars().all())

    async def add_victory_point(self, player_id: int, session_id: int) -> VictoryPoint:
        victory_point = VictoryPoint(player_id=player_id, session_id=session_id)
        self.session.add(victory_point)
        await self.session.flush()
        return victory_point

    async def get_session_victory_points(self, session_id: int) -> List[VictoryPoint]:
        result = await self.session.execute(
            select(VictoryPoint)
            .where(VictoryPoint.session_id == session_id)
            .order_by(VictoryPoint.id)
        )
        return list(result.scalars().all())

    async def count_victory_points(self, player_ids: Optional[Iterable[int]] = None) -> Dict[int, int]:
        query = select(VictoryPoint.player_id, func.count(VictoryPoint.id)).group_by(VictoryPoint.player_id)
        if player_ids is not None:
            query = query.where(VictoryPoint.player_id.in_(list(player_ids)))
        result = await self.session.execute(query)
        return {player_id: count for player_id, count in result.all()}

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    async def get_wallets(self, player_ids: Optional[Iterable[int]] = None) -> Dict[int, Wallet]:
        query = select(Wallet)
        if player_ids is not None:
            query = query.where(Wallet.player_id.in_(list(player_ids)))
        result = await self.session.execute(query)
        return {wallet.player_id: wallet for wallet in result.scalars()}

    async def get_or_create_wallet(self, player_id: int) -> Wallet:
        result = await self.session.execute(
            select(Wallet).where(Wallet.player_id == player_id)
        )
        wallet = result.scalar_one_or_none()
        if not wallet:
            wallet = Wallet(player_id=player_id, amount=0)
            self.session.add(wallet)
            await self.session.flush()
        return wallet

    async def append_wallet_transaction(
        self,
        wallet: Wallet,
        amount: int,
        session_id: Optional[int],
        transaction_type: str,
        description: str
    ) -> WalletTransaction:
        """Append a ledger row and move the cached balance by the same amount"""
        transaction = WalletTransaction(
            wallet_id=wallet.id,
            session_id=session_id,
            amount=amount,
            type=transaction_type,
            description=description
        )
        self.session.add(transaction)
        await self.session.execute(
            update(Wallet)
            .where(Wallet.id == wallet.id)
            .values(amount=Wallet.amount + amount)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        await self.session.refresh(wallet)
        return transaction

    async def get_session_wallet_transactions(
        self,
        session_id: int,
        transaction_type: str = WalletConstants.VICTORY_POINT_AWARD
    ) -> List[WalletTransaction]:
        result = await self.session.execute(
            select(WalletTransaction)
            .where(
                WalletTransaction.session_id == session_id,
                WalletTransaction.type == transaction_type
            )
            .order_by(WalletTransaction.id)
        )
        return list(result.scalars().all())

    async def list_wallets_by_amount(self) -> List[Wallet]:
        result = await self.session.execute(
            select(Wallet).order_by(Wallet.amount.desc(), Wallet.player_id)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Wallet point breakdowns
    # ------------------------------------------------------------------

    async def get_active_breakdown(self) -> Optional[WalletPointBreakdown]:
        result = await self.session.execute(
            select(WalletPointBreakdown).where(WalletPointBreakdown.active == True)
        )
        return result.scalars().first()

    async def get_breakdown(self, breakdown_id: int) -> Optional[WalletPointBreakdown]:
        return await self.session.get(WalletPointBreakdown, breakdown_id)

    async def list_breakdowns(self) -> List[WalletPointBreakdown]:
        result = await self.session.execute(
            select(WalletPointBreakdown).order_by(
                WalletPointBreakdown.active.desc(), WalletPointBreakdown.id
            )
        )
        return list(result.scalars().all())

    async def add_breakdown(self, breakdown: WalletPointBreakdown) -> WalletPointBreakdown:
        self.session.add(breakdown)
        await self.session.flush()
        return breakdown

    async def delete_breakdown(self, breakdown: WalletPointBreakdown) -> None:
        await self.session.delete(breakdown)
        await self.session.flush()

    async def activate_breakdown(self, breakdown_id: int) -> None:
        """Deactivate every breakdown, then activate one, in the caller's transaction"""
        await self.session.execute(
            update(WalletPointBreakdown)
            .where(WalletPointBreakdown.active == True)
            .values(active=False)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            update(WalletPointBreakdown)
            .where(WalletPointBreakdown.id == breakdown_id)
            .values(active=True)
            .execution_options(synchronize_session=False)
        )
        self.session.expire_all()

    # ------------------------------------------------------------------
    # Admin roles and audit trail
    # ------------------------------------------------------------------

    async def is_active_admin(self, discord_id: int) -> bool:
        result = await self.session.execute(
            select(AdminRole).where(
                AdminRole.discord_id == discord_id,
                AdminRole.is_active == True
            )
        )
        return result.scalar_one_or_none() is not None

    async def add_audit_log(self, user_id: int, action: str, details: Dict[str, Any]) -> None:
        self.session.add(AuditLog(
            user_id=user_id,
            action=action,
            details=json.dumps(details)
        ))
