"""
Session actions facade.

The public entry point for the standings, finalize and Victory Point
operations. Every action returns a result object with success, error and
error_type instead of raising: ProgArcError subclasses become their user
message and class name, anything unexpected is logged with a traceback and
reported generically as UnexpectedError.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from prog_arc.config import Config
from prog_arc.data_models.offer import OfferedPlayer, OfferState, VictoryPointGrant, WalletAward
from prog_arc.data_models.standings import SessionStandings
from prog_arc.database.database import Database
from prog_arc.services.breakdowns import BreakdownService
from prog_arc.services.leaderboard import LeaderboardService
from prog_arc.services.notifications import NotificationDispatcher, build_dispatcher
from prog_arc.services.standings import StandingsService
from prog_arc.services.victory_points import VictoryPointOfferService
from prog_arc.utils.exceptions import ProgArcError
from prog_arc.utils.logger import setup_logger

# Package logger; module loggers under prog_arc.* propagate here
logger = setup_logger('prog_arc')

GENERIC_ERROR = "An unexpected error occurred. Please try again."
UNEXPECTED_ERROR_TYPE = "UnexpectedError"


@dataclass
class ActionResult:
    """Result of an action with no specific payload"""
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None


@dataclass
class StandingsResult:
    success: bool
    standings: Optional[SessionStandings] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


@dataclass
class FinalizeResult:
    success: bool
    placements: List[int] = field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None


@dataclass
class OfferStatusResult:
    success: bool
    can_offer: bool = False
    already_assigned: bool = False
    ranked_players: List[OfferedPlayer] = field(default_factory=list)
    current_offer_rank: Optional[int] = None
    state: Optional[OfferState] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


@dataclass
class AcceptResult:
    success: bool
    granted_to: Optional[int] = None
    wallet_awards: List[WalletAward] = field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None


@dataclass
class PassResult:
    """Result of a pass: next_rank, or the grant forced at the last rank"""
    success: bool
    next_rank: Optional[int] = None
    auto_assigned: Optional[VictoryPointGrant] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class SessionActions:
    """
    Facade over the session services.

    Holds one service per concern, all sharing the database's session
    factory and a single notification dispatcher.
    """

    def __init__(self, db: Database, notifier: Optional[NotificationDispatcher] = None):
        Config.validate()
        self.db = db
        self.notifier = notifier or build_dispatcher()
        self.standings = StandingsService(db.session_factory, self.notifier)
        self.victory_points = VictoryPointOfferService(db.session_factory, self.notifier)
        self.breakdowns = BreakdownService(db.session_factory)
        self.leaderboards = LeaderboardService(db.session_factory)

    async def _guard(self, operation: str, call: Callable[[], Awaitable[Any]]) -> Tuple[Any, Optional[str], Optional[str]]:
        """Run a service call, turning exceptions into an error message and the error class name"""
        try:
            return await call(), None, None
        except ProgArcError as e:
            logger.info(f"{operation} failed: {e}")
            return None, e.user_message, type(e).__name__
        except Exception as e:
            logger.error(f"Unexpected error in {operation}: {e}", exc_info=True)
            return None, GENERIC_ERROR, UNEXPECTED_ERROR_TYPE

    # Standings

    async def get_standings(self, session_id: Optional[int] = None) -> StandingsResult:
        standings, error, error_type = await self._guard(
            "get_standings", lambda: self.standings.get_standings(session_id)
        )
        if error:
            return StandingsResult(success=False, error=error, error_type=error_type)
        return StandingsResult(success=True, standings=standings)

    async def finalize_standings(self, session_id: int, caller_id: int) -> FinalizeResult:
        placements, error, error_type = await self._guard(
            "finalize_standings", lambda: self.standings.finalize_standings(session_id, caller_id)
        )
        if error:
            return FinalizeResult(success=False, error=error, error_type=error_type)
        return FinalizeResult(success=True, placements=placements)

    async def get_sessions(self) -> ActionResult:
        sessions, error, error_type = await self._guard("get_sessions", self.standings.get_sessions)
        return ActionResult(success=error is None, data=sessions, error=error, error_type=error_type)

    async def can_finalize_standings(self, session_id: int) -> ActionResult:
        check, error, error_type = await self._guard(
            "can_finalize_standings", lambda: self.standings.can_finalize_standings(session_id)
        )
        return ActionResult(success=error is None, data=check, error=error, error_type=error_type)

    async def is_finalized(self, session_id: int) -> ActionResult:
        finalized, error, error_type = await self._guard(
            "is_finalized", lambda: self.standings.is_finalized(session_id)
        )
        return ActionResult(success=error is None, data=finalized, error=error, error_type=error_type)

    # Victory Point offer

    async def get_victory_point_offer_status(self, session_id: int) -> OfferStatusResult:
        status, error, error_type = await self._guard(
            "get_victory_point_offer_status", lambda: self.victory_points.get_offer_status(session_id)
        )
        if error:
            return OfferStatusResult(success=False, error=error, error_type=error_type)
        return OfferStatusResult(
            success=True,
            can_offer=status.can_offer,
            already_assigned=status.already_assigned,
            ranked_players=status.ranked_players,
            current_offer_rank=getattr(status.state, 'rank', None),
            state=status.state,
            reason=status.reason
        )

    async def accept_victory_point(self, session_id: int, player_id: int, caller_id: int) -> AcceptResult:
        grant, error, error_type = await self._guard(
            "accept_victory_point",
            lambda: self.victory_points.accept_victory_point(session_id, player_id, caller_id)
        )
        if error:
            return AcceptResult(success=False, error=error, error_type=error_type)
        return AcceptResult(success=True, granted_to=grant.granted_to, wallet_awards=grant.wallet_awards)

    async def pass_victory_point(self, session_id: int, current_rank: int, caller_id: int) -> PassResult:
        outcome, error, error_type = await self._guard(
            "pass_victory_point",
            lambda: self.victory_points.pass_victory_point(session_id, current_rank, caller_id)
        )
        if error:
            return PassResult(success=False, error=error, error_type=error_type)
        return PassResult(success=True, next_rank=outcome.next_rank, auto_assigned=outcome.auto_assigned)

    # Wallet breakdowns

    async def list_breakdowns(self) -> ActionResult:
        breakdowns, error, error_type = await self._guard("list_breakdowns", self.breakdowns.list_breakdowns)
        return ActionResult(success=error is None, data=breakdowns, error=error, error_type=error_type)

    async def create_breakdown(self, name: str, points: Sequence[int], caller_id: int) -> ActionResult:
        breakdown, error, error_type = await self._guard(
            "create_breakdown", lambda: self.breakdowns.create_breakdown(name, points, caller_id)
        )
        return ActionResult(success=error is None, data=breakdown, error=error, error_type=error_type)

    async def update_breakdown(self, breakdown_id: int, name: str, points: Sequence[int],
                               caller_id: int) -> ActionResult:
        breakdown, error, error_type = await self._guard(
            "update_breakdown",
            lambda: self.breakdowns.update_breakdown(breakdown_id, name, points, caller_id)
        )
        return ActionResult(success=error is None, data=breakdown, error=error, error_type=error_type)

    async def delete_breakdown(self, breakdown_id: int, caller_id: int) -> ActionResult:
        _, error, error_type = await self._guard(
            "delete_breakdown", lambda: self.breakdowns.delete_breakdown(breakdown_id, caller_id)
        )
        return ActionResult(success=error is None, error=error, error_type=error_type)

    async def set_active_breakdown(self, breakdown_id: int, caller_id: int) -> ActionResult:
        breakdown, error, error_type = await self._guard(
            "set_active_breakdown", lambda: self.breakdowns.set_active_breakdown(breakdown_id, caller_id)
        )
        return ActionResult(success=error is None, data=breakdown, error=error, error_type=error_type)

    # Leaderboards

    async def get_victory_point_leaderboard(self) -> ActionResult:
        entries, error, error_type = await self._guard(
            "get_victory_point_leaderboard", self.leaderboards.get_victory_point_leaderboard
        )
        return ActionResult(success=error is None, data=entries, error=error, error_type=error_type)

    async def get_wallet_leaderboard(self) -> ActionResult:
        entries, error, error_type = await self._guard("get_wallet_leaderboard", self.leaderboards.get_wallet_leaderboard)
        return ActionResult(success=error is None, data=entries, error=error, error_type=error_type)
