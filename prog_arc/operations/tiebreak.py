"""
Tiebreak Policy Pattern for Session Rankings

Two policies rank the same aggregated stats for two different consumers:

- StandingsPolicy orders the public standings and decides finalized placements.
- OfferRankingPolicy orders the Victory Point offer cascade.

They are deliberately separate. Neither resolves multi-way ties past its
documented keys; remaining ties fall back to ascending player id so the
output never depends on storage order.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from prog_arc.data_models.standings import MatchResult, PlayerStat, RankedPlayer

logger = logging.getLogger(__name__)


def opponent_match_win_rates(
    stats: Dict[int, PlayerStat],
    matches: Optional[Iterable[MatchResult]] = None
) -> Dict[int, float]:
    """
    Calculate opponent match-win rate (OMW%) for every player.

    For each opponent occurrence, the opponent's decided match wins are added
    to the numerator and the opponent's completed (decided or drawn) matches
    to the denominator. A player with no completed opponent matches gets 0.0.

    Args:
        stats: Aggregated stats keyed by player_id
        matches: The session's match set. When omitted, opponent records are
            read from the stats themselves.

    Returns:
        Dictionary mapping player_id to a rate between 0.0 and 1.0
    """
    wins: Dict[int, int] = defaultdict(int)
    completed: Dict[int, int] = defaultdict(int)

    if matches is None:
        for player_id, stat in stats.items():
            wins[player_id] = stat.match_wins
            completed[player_id] = stat.completed_matches
    else:
        for match in matches:
            if not match.is_complete:
                continue
            completed[match.player1_id] += 1
            completed[match.player2_id] += 1
            if match.winner_id is not None:
                wins[match.winner_id] += 1

    rates = {}
    for player_id, stat in stats.items():
        numerator = sum(wins[opponent_id] for opponent_id in stat.opponent_ids)
        denominator = sum(completed[opponent_id] for opponent_id in stat.opponent_ids)
        rates[player_id] = numerator / denominator if denominator > 0 else 0.0
    return rates


class TiebreakPolicy(ABC):
    """
    Abstract base class for ranking policies.

    A policy turns a stats map into an ordered list of RankedPlayer rows.
    """

    @abstractmethod
    def sort_key(self, stat: PlayerStat, omw: float) -> Tuple:
        """Key for an ascending sort; earlier keys rank higher"""
        pass

    @abstractmethod
    def get_policy_name(self) -> str:
        """Get human-readable name of this policy"""
        pass

    def rank(
        self,
        stats: Dict[int, PlayerStat],
        matches: Optional[Iterable[MatchResult]] = None
    ) -> List[RankedPlayer]:
        """
        Rank every player in the stats map.

        Args:
            stats: Aggregated stats keyed by player_id
            matches: The session's match set, used for OMW%

        Returns:
            RankedPlayer list with ranks 1..N
        """
        if matches is not None:
            matches = list(matches)
        rates = opponent_match_win_rates(stats, matches)

        ordered = sorted(
            (stats[player_id] for player_id in sorted(stats)),
            key=lambda stat: self.sort_key(stat, rates[stat.player_id])
        )

        ranked = [
            RankedPlayer(
                player_id=stat.player_id,
                rank=index + 1,
                stat=stat.snapshot(),
                opponent_match_win_rate=rates[stat.player_id],
            )
            for index, stat in enumerate(ordered)
        ]
        logger.debug(f"{self.get_policy_name()} ranked {len(ranked)} players")
        return ranked


class StandingsPolicy(TiebreakPolicy):
    """
    Public standings order.

    Most match wins, then most games won in lost matches, then fewest games
    lost in won matches.
    """

    def sort_key(self, stat: PlayerStat, omw: float) -> Tuple:
        return (-stat.match_wins, -stat.game_wins_in_losses, stat.game_losses_in_wins)

    def get_policy_name(self) -> str:
        return "Standings"


class OfferRankingPolicy(TiebreakPolicy):
    """
    Victory Point offer order.

    Most match wins, then highest opponent match-win rate, then most game wins.
    """

    def sort_key(self, stat: PlayerStat, omw: float) -> Tuple:
        return (-stat.match_wins, -omw, -stat.game_wins)

    def get_policy_name(self) -> str:
        return "Offer Ranking"


class TiebreakRanker:
    """Entry point pairing the aggregator output with a named policy."""

    STANDINGS = StandingsPolicy()
    OFFER = OfferRankingPolicy()

    @classmethod
    def standings(cls, stats: Dict[int, PlayerStat]) -> List[RankedPlayer]:
        return cls.STANDINGS.rank(stats)

    @classmethod
    def offer_ranking(
        cls,
        stats: Dict[int, PlayerStat],
        matches: Iterable[MatchResult]
    ) -> List[RankedPlayer]:
        return cls.OFFER.rank(stats, matches)
