"""
Wallet ledger.

Every balance change is an appended WalletTransaction plus an increment of
the wallet's cached amount, both inside the caller's transaction. Nothing
here commits: the Victory Point grant owns the transaction boundary so a
failed award rolls back the grant with it.
"""

import logging
from typing import Dict, List, Sequence

from prog_arc.constants import WalletConstants
from prog_arc.data_models.offer import WalletAward
from prog_arc.data_models.standings import RankedPlayer
from prog_arc.database.repository import SessionRepository
from prog_arc.utils.exceptions import ValidationError
from prog_arc.utils.formatting import award_description

logger = logging.getLogger(__name__)


class WalletLedger:
    """Computes and appends wallet awards for a Victory Point grant."""

    @staticmethod
    def points_for_position(points: Sequence[int], position: int) -> int:
        """Breakdown amount for a 0-based adjusted position; 0 past the last slot"""
        if 0 <= position < len(points):
            return points[position]
        return 0

    @classmethod
    def eligible_players(cls, ranking: Sequence[RankedPlayer], winner_id: int) -> List[RankedPlayer]:
        """
        Players who can earn wallet points once winner_id takes the Victory Point.

        The winner is removed first, then whoever is last of the remainder.
        The player ranked last overall therefore never earns wallet points.
        """
        remaining = [ranked for ranked in ranking if ranked.player_id != winner_id]
        return remaining[:-1]

    @classmethod
    def preview(cls, ranking: Sequence[RankedPlayer], points: Sequence[int]) -> Dict[int, int]:
        """
        Wallet points each ranked player's own position is worth this session.

        Used by the offer table; last place is always 0.
        """
        last_rank = len(ranking)
        return {
            ranked.player_id: 0 if ranked.rank == last_rank
            else cls.points_for_position(points, ranked.rank - 1)
            for ranked in ranking
        }

    @classmethod
    def plan_awards(
        cls,
        ranking: Sequence[RankedPlayer],
        winner_id: int,
        points: Sequence[int],
        session_number: int
    ) -> List[WalletAward]:
        awards = []
        for position, ranked in enumerate(cls.eligible_players(ranking, winner_id)):
            amount = cls.points_for_position(points, position)
            if amount <= 0:
                continue
            awards.append(WalletAward(
                player_id=ranked.player_id,
                rank=ranked.rank,
                position=position,
                amount=amount,
                description=award_description(session_number, ranked.rank)
            ))
        return awards

    @classmethod
    async def apply_awards(
        cls,
        repo: SessionRepository,
        session_id: int,
        awards: Sequence[WalletAward]
    ) -> None:
        for award in awards:
            await cls.credit(
                repo, award.player_id, award.amount, session_id, award.description,
                WalletConstants.VICTORY_POINT_AWARD
            )

    @staticmethod
    async def credit(
        repo: SessionRepository,
        player_id: int,
        amount: int,
        session_id: int,
        description: str,
        transaction_type: str = WalletConstants.VICTORY_POINT_AWARD
    ) -> int:
        """
        Append one transaction and move the balance by the same amount.

        Returns:
            The wallet balance after the credit
        """
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError(f"Wallet amount must be a whole number, got {amount!r}")
        wallet = await repo.get_or_create_wallet(player_id)
        await repo.append_wallet_transaction(wallet, amount, session_id, transaction_type, description)
        logger.debug(f"Credited {amount} to player {player_id} for session {session_id}: {description}")
        return wallet.amount
