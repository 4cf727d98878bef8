"""
Leaderboard and wallet breakdown data transfer objects.
"""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class VictoryPointLeaderboardEntry:
    rank: int
    player_id: int
    player_name: str
    victory_points: int


@dataclass(frozen=True)
class WalletLeaderboardEntry:
    rank: int
    player_id: int
    player_name: str
    amount: int


@dataclass(frozen=True)
class BreakdownInfo:
    """Read-only view of a WalletPointBreakdown row."""
    id: int
    name: str
    points: List[int]
    active: bool

    @classmethod
    def from_model(cls, breakdown) -> "BreakdownInfo":
        return cls(
            id=breakdown.id,
            name=breakdown.name,
            points=list(breakdown.points),
            active=bool(breakdown.active)
        )
