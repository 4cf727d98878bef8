"""
Match result aggregation.

Folds every pairing of a session into per-player statistics. The rules
follow best-of-3 play: reaching 2 game wins decides the match, 1-1 is a
draw, and 0-0 has not been played yet.
"""

from typing import Dict, Iterable

from prog_arc.config import Config
from prog_arc.data_models.standings import MatchResult, PlayerStat
from prog_arc.utils.exceptions import ValidationError


class MatchResultAggregator:
    """Builds PlayerStat records from raw match results."""

    @staticmethod
    def validate(match: MatchResult) -> None:
        """
        Reject results that cannot occur in a best-of-3.

        Raises:
            ValidationError: If a win count is outside [0, 2], both sides
                claim the match, or a player is paired against themselves
        """
        limit = Config.GAMES_TO_WIN_MATCH
        for wins in (match.player1_wins, match.player2_wins):
            if isinstance(wins, bool) or not isinstance(wins, int) or not 0 <= wins <= limit:
                raise ValidationError(
                    f"Round {match.round}: win counts must be whole numbers between 0 and {limit}, "
                    f"got {match.player1_wins}-{match.player2_wins}"
                )
        if match.player1_wins == limit and match.player2_wins == limit:
            raise ValidationError(
                f"Round {match.round}: both players cannot win the match ({limit}-{limit})"
            )
        if match.player1_id == match.player2_id:
            raise ValidationError(f"Round {match.round}: player {match.player1_id} is paired with themselves")

    @classmethod
    def aggregate(cls, matches: Iterable[MatchResult]) -> Dict[int, PlayerStat]:
        """
        Aggregate a session's match results into per-player stats.

        Every player appearing in any pairing gets an entry, including players
        whose only pairings are unplayed.

        Args:
            matches: All MatchResult rows for one session

        Returns:
            Dictionary mapping player_id to PlayerStat
        """
        stats: Dict[int, PlayerStat] = {}

        for match in matches:
            cls.validate(match)

            p1 = stats.setdefault(match.player1_id, PlayerStat(player_id=match.player1_id))
            p2 = stats.setdefault(match.player2_id, PlayerStat(player_id=match.player2_id))

            if not match.is_played:
                continue

            p1.opponent_ids.append(p2.player_id)
            p2.opponent_ids.append(p1.player_id)

            p1.game_wins += match.player1_wins
            p1.game_losses += match.player2_wins
            p2.game_wins += match.player2_wins
            p2.game_losses += match.player1_wins

            winner_id = match.winner_id
            if winner_id is not None:
                winner, loser = (p1, p2) if winner_id == p1.player_id else (p2, p1)
                loser_games = match.wins_for(loser.player_id)

                winner.match_wins += 1
                loser.match_losses += 1
                winner.game_losses_in_wins += loser_games
                loser.game_wins_in_losses += loser_games
            elif match.is_draw:
                p1.match_draws += 1
                p2.match_draws += 1
            # 1-0 / 0-1: games count, match result still open

        return stats
