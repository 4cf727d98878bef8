"""
Victory Point offer data models.

The offer cascade is an explicit tagged state: Offered(rank) until
someone takes the Victory Point, then Accepted(player_id) forever after.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class Offered:
    """The Victory Point is currently offered to the player at this rank."""
    rank: int


@dataclass(frozen=True)
class Accepted:
    """The Victory Point has been granted. Absorbing state."""
    player_id: int


OfferState = Union[Offered, Accepted]


@dataclass(frozen=True)
class WalletAward:
    """Wallet points handed to one player alongside a Victory Point grant."""
    player_id: int
    rank: int        # Rank in the offer ranking
    position: int    # 0-based index into the breakdown after the VP winner is removed
    amount: int
    description: str


@dataclass(frozen=True)
class VictoryPointGrant:
    """Result of entering Accepted(player_id)."""
    session_id: int
    granted_to: int
    victory_point_id: int
    wallet_awards: List[WalletAward] = field(default_factory=list)
    auto_assigned: bool = False


@dataclass(frozen=True)
class PassOutcome:
    """Result of a PASS: either the next offered rank or the forced grant at last place."""
    next_rank: Optional[int] = None
    auto_assigned: Optional[VictoryPointGrant] = None


@dataclass(frozen=True)
class OfferedPlayer:
    """Single row of the offer table shown to admins."""
    player_id: int
    player_name: str
    rank: int
    match_wins: int
    game_wins: int
    opponent_match_win_rate: float
    current_victory_points: int
    current_wallet_points: int
    wallet_points_this_session: int


@dataclass(frozen=True)
class OfferStatus:
    """Snapshot of the offer protocol for one session."""
    session_id: int
    session_number: int
    can_offer: bool
    already_assigned: bool
    ranked_players: List[OfferedPlayer] = field(default_factory=list)
    state: Optional[OfferState] = None
    reason: Optional[str] = None
