"""
Standings service.

Builds the public standings from a session's pairings and performs the
one-time finalize transition that writes the top six placements.
"""

import logging
from typing import List, Optional, Tuple

from prog_arc.constants import NotificationEvents, PlacementConstants
from prog_arc.data_models.standings import (
    FinalizeCheck, MatchResult, RankedPlayer, SessionStandings, SessionSummary, StandingsEntry
)
from prog_arc.database.models import ProgSession
from prog_arc.database.repository import SessionRepository
from prog_arc.operations.aggregator import MatchResultAggregator
from prog_arc.operations.tiebreak import TiebreakRanker
from prog_arc.services.base import BaseService
from prog_arc.services.notifications import NotificationDispatcher, NullNotifier, safe_notify
from prog_arc.utils.exceptions import NotFoundError, StateConflictError, ValidationError

logger = logging.getLogger(__name__)


class StandingsService(BaseService):
    """Standings queries and the finalize transition."""

    def __init__(self, session_factory, notifier: Optional[NotificationDispatcher] = None):
        super().__init__(session_factory)
        self.notifier = notifier or NullNotifier()

    async def _resolve_session(self, repo: SessionRepository, session_id: Optional[int],
                               for_update: bool = False) -> ProgSession:
        if session_id is None:
            prog_session = await repo.get_active_session()
            if not prog_session:
                raise NotFoundError("Active session")
            return prog_session

        prog_session = await repo.get_session(session_id, for_update=for_update)
        if not prog_session:
            raise NotFoundError("Session", session_id)
        return prog_session

    @staticmethod
    def _rank(matches: List[MatchResult]) -> List[RankedPlayer]:
        return TiebreakRanker.standings(MatchResultAggregator.aggregate(matches))

    async def get_standings(self, session_id: Optional[int] = None) -> SessionStandings:
        """
        Rank a session's players by the standings policy.

        Args:
            session_id: Session to rank; the active session when omitted

        Raises:
            NotFoundError: If the session (or an active session) does not exist
        """
        async with self.get_repository() as repo:
            prog_session = await self._resolve_session(repo, session_id)
            ranking = self._rank(await repo.get_match_results(prog_session.id))
            players = await repo.get_players(ranked.player_id for ranked in ranking)

            entries = [
                StandingsEntry(
                    rank=ranked.rank,
                    player_id=ranked.player_id,
                    player_name=players[ranked.player_id].name if ranked.player_id in players else "Unknown",
                    match_wins=ranked.stat.match_wins,
                    match_losses=ranked.stat.match_losses,
                    match_draws=ranked.stat.match_draws,
                    game_wins=ranked.stat.game_wins,
                    game_losses=ranked.stat.game_losses,
                )
                for ranked in ranking
            ]
            return SessionStandings(
                session_id=prog_session.id,
                session_number=prog_session.number,
                is_finalized=prog_session.is_finalized,
                entries=entries
            )

    async def get_sessions(self) -> List[SessionSummary]:
        """All sessions, newest first."""
        async with self.get_repository() as repo:
            return [
                SessionSummary(id=s.id, number=s.number, date=s.date, active=bool(s.active))
                for s in await repo.list_sessions()
            ]

    async def is_finalized(self, session_id: int) -> bool:
        async with self.get_repository() as repo:
            prog_session = await self._resolve_session(repo, session_id)
            return prog_session.is_finalized

    @staticmethod
    def _finalize_conditions(prog_session: ProgSession, matches: List[MatchResult]) -> Tuple[bool, bool, bool]:
        player_ids = set()
        for match in matches:
            player_ids.update((match.player1_id, match.player2_id))
        is_current = bool(prog_session.active)
        all_complete = bool(matches) and all(match.is_played for match in matches)
        enough_players = len(player_ids) >= PlacementConstants.MIN_PLAYERS_TO_FINALIZE
        return is_current, all_complete, enough_players

    async def can_finalize_standings(self, session_id: int) -> FinalizeCheck:
        """Report whether finalize would pass its preconditions. Never mutates."""
        async with self.get_repository() as repo:
            prog_session = await self._resolve_session(repo, session_id)
            matches = await repo.get_match_results(prog_session.id)
            is_current, all_complete, enough_players = self._finalize_conditions(prog_session, matches)
            return FinalizeCheck(
                can_finalize=is_current and all_complete and enough_players and not prog_session.is_finalized,
                is_current_session=is_current,
                all_matches_complete=all_complete,
                enough_players=enough_players
            )

    async def finalize_standings(self, session_id: int, caller_id: int) -> List[int]:
        """
        Write the top six standings placements into the session.

        Args:
            session_id: Session to finalize
            caller_id: Discord ID of the acting admin

        Returns:
            The six placed player ids, first to sixth

        Raises:
            AuthorizationError: If the caller is not an admin
            NotFoundError: If the session does not exist
            StateConflictError: If the session is not active or already finalized
            ValidationError: If a pairing is unplayed or fewer than six players took part
        """
        async with self.get_repository() as repo:
            await self.require_admin(repo, caller_id, "finalize_standings")
            prog_session = await self._resolve_session(repo, session_id, for_update=True)

            if not prog_session.active:
                raise StateConflictError(f"Session {prog_session.number} is not the current session")
            if prog_session.is_finalized:
                raise StateConflictError(f"Standings for session {prog_session.number} are already finalized")

            matches = await repo.get_match_results(prog_session.id)
            _, all_complete, enough_players = self._finalize_conditions(prog_session, matches)
            if not all_complete:
                raise ValidationError("All matches must be played before finalizing standings")
            if not enough_players:
                raise ValidationError(
                    f"At least {PlacementConstants.MIN_PLAYERS_TO_FINALIZE} players are required to finalize standings"
                )

            ranking = self._rank(matches)
            placed = [ranked.player_id for ranked in ranking[:len(PlacementConstants.PLACEMENT_FIELDS)]]

            if not await repo.claim_placements(prog_session.id, placed):
                raise StateConflictError(f"Standings for session {prog_session.number} are already finalized")

            await repo.add_audit_log(caller_id, "standings_finalized", {
                'session_id': prog_session.id,
                'session_number': prog_session.number,
                'placements': placed,
            })
            session_number = prog_session.number

        logger.info(f"Finalized standings for session {session_number}: {placed}")
        await safe_notify(self.notifier, NotificationEvents.STANDINGS, session_id, {
            'session_number': session_number,
        })
        return placed
