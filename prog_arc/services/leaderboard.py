"""
Leaderboard service.

Season-wide Victory Point and wallet leaderboards.
"""

import logging
from typing import List

from prog_arc.data_models.leaderboard import VictoryPointLeaderboardEntry, WalletLeaderboardEntry
from prog_arc.services.base import BaseService

logger = logging.getLogger(__name__)


class LeaderboardService(BaseService):
    """Read-only leaderboard queries."""

    async def get_victory_point_leaderboard(self) -> List[VictoryPointLeaderboardEntry]:
        """Every player, most Victory Points first, then by name."""
        async with self.get_repository() as repo:
            players = await repo.list_players()
            counts = await repo.count_victory_points()

        ordered = sorted(players, key=lambda p: (-counts.get(p.id, 0), p.name, p.id))
        return [
            VictoryPointLeaderboardEntry(
                rank=index + 1,
                player_id=player.id,
                player_name=player.name,
                victory_points=counts.get(player.id, 0)
            )
            for index, player in enumerate(ordered)
        ]

    async def get_wallet_leaderboard(self) -> List[WalletLeaderboardEntry]:
        """Wallets by balance, highest first."""
        async with self.get_repository() as repo:
            wallets = await repo.list_wallets_by_amount()
            players = await repo.get_players(wallet.player_id for wallet in wallets)

        return [
            WalletLeaderboardEntry(
                rank=index + 1,
                player_id=wallet.player_id,
                player_name=players[wallet.player_id].name if wallet.player_id in players else "Unknown",
                amount=wallet.amount
            )
            for index, wallet in enumerate(wallets)
        ]
