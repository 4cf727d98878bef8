"""Tests for the Victory Point accept/pass cascade."""

import asyncio

import pytest
from sqlalchemy import func, select

from prog_arc.constants import NotificationEvents, WalletConstants
from prog_arc.data_models.offer import Accepted, Offered
from prog_arc.database.models import (
    ProgSession, VictoryPoint, Wallet, WalletPointBreakdown, WalletTransaction
)
from prog_arc.database.repository import SessionRepository
from prog_arc.services.victory_points import VictoryPointOfferService
from prog_arc.utils.exceptions import (
    AuthorizationError, NotFoundError, StateConflictError, ValidationError
)

from conftest import (
    BREAKDOWN_POINTS, OFFER_ORDER, OWNER_ID, STRANGER_ID, RecordingNotifier, create_session,
    three_round_results
)


@pytest.fixture
def service(db, notifier):
    return VictoryPointOfferService(db.session_factory, notifier)


async def wallet_amounts(db):
    async with db.get_session() as session:
        wallets = (await session.execute(select(Wallet))).scalars().all()
        return {wallet.player_id: wallet.amount for wallet in wallets}


async def transactions(db):
    async with db.get_session() as session:
        return (await session.execute(
            select(WalletTransaction).order_by(WalletTransaction.id)
        )).scalars().all()


async def victory_point_count(db):
    async with db.get_session() as session:
        return await session.scalar(select(func.count(VictoryPoint.id)))


async def test_offer_status_before_any_action(db, players, finalized_session, service):
    status = await service.get_offer_status(finalized_session)

    assert status.can_offer
    assert not status.already_assigned
    assert status.state == Offered(rank=1)
    assert status.reason is None
    assert [p.player_name for p in status.ranked_players] == OFFER_ORDER
    assert [p.wallet_points_this_session for p in status.ranked_players] == BREAKDOWN_POINTS[:5] + [0]
    assert all(p.current_victory_points == 0 for p in status.ranked_players)


async def test_offer_status_explains_unfinalized_session(db, players, breakdown, service):
    session_id = await create_session(db, 12, three_round_results(players))

    status = await service.get_offer_status(session_id)

    assert not status.can_offer
    assert "finalized" in status.reason
    assert len(status.ranked_players) == 6


async def test_accept_at_rank_one(db, players, finalized_session, service, notifier):
    grant = await service.accept_victory_point(finalized_session, players['P1'], OWNER_ID)

    assert grant.granted_to == players['P1']
    assert not grant.auto_assigned
    # P3, P2, P4, P5 get the first four slots; P6 is last and gets nothing
    assert [(a.player_id, a.amount) for a in grant.wallet_awards] == [
        (players['P3'], 10), (players['P2'], 8), (players['P4'], 6), (players['P5'], 4)
    ]
    assert grant.wallet_awards[0].description == "Session 12 - 2nd place award (VP declined)"

    amounts = await wallet_amounts(db)
    assert amounts == {players['P3']: 10, players['P2']: 8, players['P4']: 6, players['P5']: 4}
    assert all(t.type == WalletConstants.VICTORY_POINT_AWARD for t in await transactions(db))
    assert notifier.event_types == [NotificationEvents.LEADERBOARD, NotificationEvents.WALLET_UPDATE]

    async with db.get_session() as session:
        prog_session = await session.get(ProgSession, finalized_session)
        assert prog_session.victory_points_assigned
        assert prog_session.wallet_points_assigned


async def test_cascade_passes_to_rank_five(db, players, finalized_session, service):
    for rank in range(1, 5):
        outcome = await service.pass_victory_point(finalized_session, rank, OWNER_ID)
        assert outcome.next_rank == rank + 1
        assert outcome.auto_assigned is None

    status = await service.get_offer_status(finalized_session)
    assert status.state == Offered(rank=5)

    grant = await service.accept_victory_point(finalized_session, players['P5'], OWNER_ID)

    assert grant.granted_to == players['P5']
    expected = {players[name]: points for name, points in zip(OFFER_ORDER[:4], BREAKDOWN_POINTS[:4])}
    assert await wallet_amounts(db) == expected
    assert players['P6'] not in await wallet_amounts(db)

    status = await service.get_offer_status(finalized_session)
    assert status.state == Accepted(player_id=players['P5'])
    assert status.already_assigned and not status.can_offer
    by_name = {p.player_name: p for p in status.ranked_players}
    assert by_name['P5'].current_victory_points == 1
    assert by_name['P1'].current_wallet_points == 10


async def test_pass_at_last_rank_auto_assigns(db, players, finalized_session, service):
    for rank in range(1, 6):
        await service.pass_victory_point(finalized_session, rank, OWNER_ID)

    outcome = await service.pass_victory_point(finalized_session, 6, OWNER_ID)

    assert outcome.next_rank is None
    assert outcome.auto_assigned.granted_to == players['P6']
    assert outcome.auto_assigned.auto_assigned
    assert players['P6'] not in {a.player_id for a in outcome.auto_assigned.wallet_awards}
    assert players['P6'] not in await wallet_amounts(db)
    assert await victory_point_count(db) == 1


async def test_last_ranked_player_never_credited(db, players, finalized_session, service):
    await service.accept_victory_point(finalized_session, players['P1'], OWNER_ID)

    wallet_ids = {t.wallet_id for t in await transactions(db)}
    async with db.get_session() as session:
        last_wallet = await session.scalar(select(Wallet).where(Wallet.player_id == players['P6']))
    assert last_wallet is None or last_wallet.id not in wallet_ids


async def test_second_accept_conflicts(db, players, finalized_session, service):
    await service.accept_victory_point(finalized_session, players['P1'], OWNER_ID)

    with pytest.raises(StateConflictError):
        await service.accept_victory_point(finalized_session, players['P1'], OWNER_ID)
    assert await victory_point_count(db) == 1
    assert len(await transactions(db)) == 4


async def test_concurrent_accepts_have_one_winner(db, players, finalized_session, service):
    results = await asyncio.gather(
        service.accept_victory_point(finalized_session, players['P1'], OWNER_ID),
        service.accept_victory_point(finalized_session, players['P1'], OWNER_ID),
        return_exceptions=True
    )

    assert sum(isinstance(r, StateConflictError) for r in results) == 1
    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert await victory_point_count(db) == 1
    assert len(await transactions(db)) == 4


async def test_accept_must_name_the_offered_player(db, players, finalized_session, service):
    with pytest.raises(StateConflictError):
        await service.accept_victory_point(finalized_session, players['P3'], OWNER_ID)
    with pytest.raises(StateConflictError):
        await service.accept_victory_point(finalized_session, 999, OWNER_ID)
    assert await victory_point_count(db) == 0


async def test_stale_pass_rank_conflicts(db, players, finalized_session, service):
    await service.pass_victory_point(finalized_session, 1, OWNER_ID)

    with pytest.raises(StateConflictError):
        await service.pass_victory_point(finalized_session, 1, OWNER_ID)
    with pytest.raises(StateConflictError):
        await service.pass_victory_point(finalized_session, 3, OWNER_ID)


async def test_offer_requires_admin(db, players, finalized_session, service):
    with pytest.raises(AuthorizationError):
        await service.accept_victory_point(finalized_session, players['P1'], STRANGER_ID)
    with pytest.raises(AuthorizationError):
        await service.pass_victory_point(finalized_session, 1, STRANGER_ID)


async def test_offer_requires_active_breakdown(db, players, finalized_session, service):
    async with db.transaction() as session:
        for row in (await session.execute(select(WalletPointBreakdown))).scalars():
            row.active = False

    with pytest.raises(ValidationError):
        await service.accept_victory_point(finalized_session, players['P1'], OWNER_ID)


async def test_offer_requires_finalized_standings(db, players, breakdown, service):
    session_id = await create_session(db, 12, three_round_results(players))

    with pytest.raises(StateConflictError):
        await service.accept_victory_point(session_id, players['P1'], OWNER_ID)
    with pytest.raises(NotFoundError):
        await service.accept_victory_point(999, players['P1'], OWNER_ID)


async def test_notification_failure_does_not_roll_back_grant(db, players, finalized_session):
    service = VictoryPointOfferService(db.session_factory, RecordingNotifier(fail=True))

    grant = await service.accept_victory_point(finalized_session, players['P1'], OWNER_ID)

    assert grant.granted_to == players['P1']
    assert await victory_point_count(db) == 1


async def test_pass_committed_before_claim_stops_the_accept(db, players, finalized_session, service, monkeypatch):
    original_claim = SessionRepository.claim_victory_point
    other_admin = VictoryPointOfferService(db.session_factory)

    async def pass_then_claim(self, session_id, expected_rank):
        # Another admin passes rank 1 after this accept checked the offer
        monkeypatch.setattr(SessionRepository, 'claim_victory_point', original_claim)
        await other_admin.pass_victory_point(session_id, 1, OWNER_ID)
        return await original_claim(self, session_id, expected_rank)

    monkeypatch.setattr(SessionRepository, 'claim_victory_point', pass_then_claim)

    with pytest.raises(StateConflictError):
        await service.accept_victory_point(finalized_session, players['P1'], OWNER_ID)

    assert await victory_point_count(db) == 0
    assert await transactions(db) == []
    status = await service.get_offer_status(finalized_session)
    assert status.state == Offered(rank=2)
    assert status.can_offer
