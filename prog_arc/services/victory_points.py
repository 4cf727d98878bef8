"""
Victory Point offer service.

The Victory Point of a finalized session is offered down the offer ranking
one player at a time. The state lives on the session row:

- Offered(rank): victory_points_assigned is false, offer_rank is the rank
- Accepted(player_id): victory_points_assigned is true; the player is read
  back from the session's VictoryPoint row

Every transition recomputes the ranking from the pairings and checks the
persisted rank, so a stale admin screen cannot grant to the wrong player.
Entering Accepted is a single transaction: claim the flags with a
conditional UPDATE, create the VictoryPoint, append the wallet awards.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from prog_arc.constants import NotificationEvents
from prog_arc.data_models.offer import (
    Accepted, Offered, OfferedPlayer, OfferState, OfferStatus, PassOutcome, VictoryPointGrant
)
from prog_arc.data_models.standings import RankedPlayer
from prog_arc.database.models import ProgSession, WalletPointBreakdown
from prog_arc.database.repository import SessionRepository
from prog_arc.operations.aggregator import MatchResultAggregator
from prog_arc.operations.tiebreak import TiebreakRanker
from prog_arc.services.base import BaseService
from prog_arc.services.notifications import NotificationDispatcher, NullNotifier, safe_notify
from prog_arc.services.wallet_ledger import WalletLedger
from prog_arc.utils.exceptions import NotFoundError, ProgArcError, StateConflictError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class _OfferContext:
    prog_session: ProgSession
    breakdown: Optional[WalletPointBreakdown]
    ranking: List[RankedPlayer]

    @property
    def points(self) -> List[int]:
        return self.breakdown.points if self.breakdown else []


class VictoryPointOfferService(BaseService):
    """Runs the accept/pass cascade for a session's Victory Point."""

    def __init__(self, session_factory, notifier: Optional[NotificationDispatcher] = None,
                 ledger: Optional[WalletLedger] = None):
        super().__init__(session_factory)
        self.notifier = notifier or NullNotifier()
        self.ledger = ledger or WalletLedger()

    # ------------------------------------------------------------------
    # State reconstruction
    # ------------------------------------------------------------------

    async def _load_context(self, repo: SessionRepository, session_id: int,
                            for_update: bool = False) -> _OfferContext:
        prog_session = await repo.get_session(session_id, for_update=for_update)
        if not prog_session:
            raise NotFoundError("Session", session_id)

        matches = await repo.get_match_results(prog_session.id)
        ranking = TiebreakRanker.offer_ranking(MatchResultAggregator.aggregate(matches), matches)
        breakdown = await repo.get_active_breakdown()
        return _OfferContext(prog_session=prog_session, breakdown=breakdown, ranking=ranking)

    @staticmethod
    def _blocker(context: _OfferContext) -> Optional[ProgArcError]:
        """First reason the Victory Point cannot be offered, or None"""
        prog_session = context.prog_session
        if not prog_session.active:
            return StateConflictError(f"Session {prog_session.number} is not the current session")
        if prog_session.victory_points_assigned:
            return StateConflictError(f"The Victory Point for session {prog_session.number} has already been assigned")
        if not prog_session.is_finalized:
            return StateConflictError("Standings must be finalized before offering the Victory Point")
        if context.breakdown is None:
            return ValidationError("No active wallet point breakdown is configured")
        if not context.ranking:
            return ValidationError("No ranked players in this session")
        return None

    async def _load_offerable(self, repo: SessionRepository, session_id: int, operation: str) -> _OfferContext:
        context = await self._load_context(repo, session_id, for_update=True)
        blocker = self._blocker(context)
        if blocker is not None:
            logger.warning(f"Rejected {operation} for session {session_id}: {blocker}")
            raise blocker
        return context

    @staticmethod
    async def _current_state(repo: SessionRepository, prog_session: ProgSession) -> OfferState:
        if prog_session.victory_points_assigned:
            victory_points = await repo.get_session_victory_points(prog_session.id)
            if victory_points:
                return Accepted(player_id=victory_points[0].player_id)
        return Offered(rank=prog_session.offer_rank)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_offer_status(self, session_id: int) -> OfferStatus:
        """
        Describe where the offer stands and who is in line.

        Returns the ranked players with their Victory Point totals, wallet
        balances and what their position is worth this session. When the
        Victory Point cannot be offered, can_offer is False and reason says why.
        """
        async with self.get_repository() as repo:
            context = await self._load_context(repo, session_id)
            prog_session = context.prog_session
            blocker = self._blocker(context)

            player_ids = [ranked.player_id for ranked in context.ranking]
            players = await repo.get_players(player_ids)
            vp_counts = await repo.count_victory_points(player_ids)
            wallets = await repo.get_wallets(player_ids)
            this_session = WalletLedger.preview(context.ranking, context.points)

            ranked_players = [
                OfferedPlayer(
                    player_id=ranked.player_id,
                    player_name=players[ranked.player_id].name if ranked.player_id in players else "Unknown",
                    rank=ranked.rank,
                    match_wins=ranked.match_wins,
                    game_wins=ranked.game_wins,
                    opponent_match_win_rate=ranked.opponent_match_win_rate,
                    current_victory_points=vp_counts.get(ranked.player_id, 0),
                    current_wallet_points=wallets[ranked.player_id].amount if ranked.player_id in wallets else 0,
                    wallet_points_this_session=this_session[ranked.player_id],
                )
                for ranked in context.ranking
            ]

            return OfferStatus(
                session_id=prog_session.id,
                session_number=prog_session.number,
                can_offer=blocker is None,
                already_assigned=bool(prog_session.victory_points_assigned),
                ranked_players=ranked_players,
                state=await self._current_state(repo, prog_session),
                reason=getattr(blocker, 'reason', None)
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def accept_victory_point(self, session_id: int, player_id: int, caller_id: int) -> VictoryPointGrant:
        """
        Grant the Victory Point to the player currently being offered it.

        Raises:
            AuthorizationError: If the caller is not an admin
            NotFoundError: If the session does not exist
            StateConflictError: If the player is not the one currently offered,
                or the Victory Point is already assigned
            ValidationError: If no breakdown is active or nobody is ranked
        """
        async with self.get_repository() as repo:
            await self.require_admin(repo, caller_id, "accept_victory_point")
            context = await self._load_offerable(repo, session_id, "accept_victory_point")

            by_player = {ranked.player_id: ranked for ranked in context.ranking}
            if player_id not in by_player:
                raise StateConflictError(f"Player {player_id} is not ranked in this session")

            offer_rank = context.prog_session.offer_rank
            if by_player[player_id].rank != offer_rank:
                raise StateConflictError(
                    f"The Victory Point is currently offered to rank {offer_rank}, "
                    f"not rank {by_player[player_id].rank}"
                )

            grant = await self._grant(repo, context, player_id, caller_id, auto_assigned=False)
            session_number = context.prog_session.number

        await self._announce(grant, session_number)
        return grant

    async def pass_victory_point(self, session_id: int, current_rank: int, caller_id: int) -> PassOutcome:
        """
        Pass the offer from current_rank to the next rank.

        Passing at the last rank grants the Victory Point to the last-ranked
        player, who never earns wallet points.

        Raises:
            AuthorizationError: If the caller is not an admin
            NotFoundError: If the session does not exist
            StateConflictError: If current_rank is not the persisted offer rank
            ValidationError: If no breakdown is active or nobody is ranked
        """
        async with self.get_repository() as repo:
            await self.require_admin(repo, caller_id, "pass_victory_point")
            context = await self._load_offerable(repo, session_id, "pass_victory_point")

            offer_rank = context.prog_session.offer_rank
            if current_rank != offer_rank:
                raise StateConflictError(
                    f"The Victory Point is currently offered to rank {offer_rank}, not rank {current_rank}"
                )

            total = len(context.ranking)
            if current_rank > total:
                raise StateConflictError(f"Offer rank {current_rank} is past the last ranked player")

            if current_rank < total:
                if not await repo.advance_offer(context.prog_session.id, current_rank):
                    raise StateConflictError("The offer has already moved on")
                logger.info(
                    f"Session {context.prog_session.number}: rank {current_rank} passed, "
                    f"offering to rank {current_rank + 1}"
                )
                return PassOutcome(next_rank=current_rank + 1)

            last_player_id = context.ranking[-1].player_id
            grant = await self._grant(repo, context, last_player_id, caller_id, auto_assigned=True)
            session_number = context.prog_session.number

        await self._announce(grant, session_number)
        return PassOutcome(auto_assigned=grant)

    async def _grant(
        self,
        repo: SessionRepository,
        context: _OfferContext,
        player_id: int,
        caller_id: int,
        auto_assigned: bool
    ) -> VictoryPointGrant:
        """Enter Accepted(player_id). Must run inside the caller's transaction."""
        prog_session = context.prog_session

        # Claim first at the rank this grant was checked against; a concurrent
        # grant or pass leaves zero matching rows and this one stops here
        if not await repo.claim_victory_point(prog_session.id, prog_session.offer_rank):
            raise StateConflictError(
                f"The Victory Point offer for session {prog_session.number} changed; reload and try again"
            )

        victory_point = await repo.add_victory_point(player_id, prog_session.id)
        awards = self.ledger.plan_awards(context.ranking, player_id, context.points, prog_session.number)
        await self.ledger.apply_awards(repo, prog_session.id, awards)

        await repo.add_audit_log(caller_id, "victory_point_granted", {
            'session_id': prog_session.id,
            'session_number': prog_session.number,
            'player_id': player_id,
            'auto_assigned': auto_assigned,
            'wallet_awards': [{'player_id': a.player_id, 'amount': a.amount} for a in awards],
        })

        logger.info(
            f"Session {prog_session.number}: Victory Point granted to player {player_id}"
            f"{' (auto-assigned)' if auto_assigned else ''}, {len(awards)} wallet awards"
        )
        return VictoryPointGrant(
            session_id=prog_session.id,
            granted_to=player_id,
            victory_point_id=victory_point.id,
            wallet_awards=awards,
            auto_assigned=auto_assigned
        )

    async def _announce(self, grant: VictoryPointGrant, session_number: int) -> None:
        await safe_notify(self.notifier, NotificationEvents.LEADERBOARD, grant.session_id, {
            'session_number': session_number,
            'granted_to': grant.granted_to,
        })
        await safe_notify(self.notifier, NotificationEvents.WALLET_UPDATE, grant.session_id, {
            'session_number': session_number,
            'awards': len(grant.wallet_awards),
        })
