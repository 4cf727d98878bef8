"""
Services package for the prog session engine.

Each service owns one concern and runs its own transaction per call.
"""

from .base import BaseService
from .standings import StandingsService
from .victory_points import VictoryPointOfferService
from .breakdowns import BreakdownService
from .leaderboard import LeaderboardService

__all__ = [
    'BaseService', 'StandingsService', 'VictoryPointOfferService',
    'BreakdownService', 'LeaderboardService'
]
