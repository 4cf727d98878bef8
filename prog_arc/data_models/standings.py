"""
Standings data models for session ranking.

Provides the data transfer objects that flow from raw pairings through
aggregation and ranking. None of these are persisted; they are rebuilt
from the pairings table on every query.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional

from prog_arc.config import Config


@dataclass(frozen=True)
class MatchResult:
    """One best-of-3 pairing result."""
    round: int
    player1_id: int
    player2_id: int
    player1_wins: int
    player2_wins: int

    @classmethod
    def from_pairing(cls, pairing) -> "MatchResult":
        return cls(
            round=pairing.round,
            player1_id=pairing.player1_id,
            player2_id=pairing.player2_id,
            player1_wins=pairing.player1_wins,
            player2_wins=pairing.player2_wins,
        )

    @property
    def is_played(self) -> bool:
        return self.player1_wins > 0 or self.player2_wins > 0

    @property
    def is_draw(self) -> bool:
        return self.player1_wins == 1 and self.player2_wins == 1

    @property
    def winner_id(self) -> Optional[int]:
        if self.player1_wins == Config.GAMES_TO_WIN_MATCH:
            return self.player1_id
        if self.player2_wins == Config.GAMES_TO_WIN_MATCH:
            return self.player2_id
        return None

    @property
    def is_decided(self) -> bool:
        return self.winner_id is not None

    @property
    def is_complete(self) -> bool:
        """Decided or drawn; the only results that count toward OMW%."""
        return self.is_decided or self.is_draw

    def wins_for(self, player_id: int) -> int:
        return self.player1_wins if player_id == self.player1_id else self.player2_wins

    def opponent_of(self, player_id: int) -> int:
        return self.player2_id if player_id == self.player1_id else self.player1_id


@dataclass
class PlayerStat:
    """Per-player statistics folded from a session's pairings."""
    player_id: int
    match_wins: int = 0
    match_losses: int = 0
    match_draws: int = 0
    game_wins: int = 0
    game_losses: int = 0
    game_wins_in_losses: int = 0
    game_losses_in_wins: int = 0
    opponent_ids: List[int] = field(default_factory=list)

    @property
    def completed_matches(self) -> int:
        return self.match_wins + self.match_losses + self.match_draws

    def snapshot(self) -> "PlayerStat":
        return replace(self, opponent_ids=list(self.opponent_ids))


@dataclass(frozen=True)
class RankedPlayer:
    """Single ranked row. Ranks are 1-based and contiguous."""
    player_id: int
    rank: int
    stat: PlayerStat
    opponent_match_win_rate: float = 0.0

    @property
    def match_wins(self) -> int:
        return self.stat.match_wins

    @property
    def game_wins(self) -> int:
        return self.stat.game_wins


@dataclass(frozen=True)
class StandingsEntry:
    """Public standings row with the player's display name."""
    rank: int
    player_id: int
    player_name: str
    match_wins: int
    match_losses: int
    match_draws: int
    game_wins: int
    game_losses: int


@dataclass(frozen=True)
class SessionStandings:
    session_id: int
    session_number: int
    is_finalized: bool
    entries: List[StandingsEntry] = field(default_factory=list)


@dataclass(frozen=True)
class FinalizeCheck:
    """Read-only answer to whether finalize would currently succeed."""
    can_finalize: bool
    is_current_session: bool
    all_matches_complete: bool
    enough_players: bool


@dataclass(frozen=True)
class SessionSummary:
    id: int
    number: int
    date: Optional[datetime]
    active: bool
