"""Tests for the SessionActions facade: results instead of exceptions."""

import pytest

from prog_arc.actions import GENERIC_ERROR, UNEXPECTED_ERROR_TYPE, SessionActions
from prog_arc.data_models.offer import Accepted, Offered

from conftest import OWNER_ID, STRANGER_ID, create_session, three_round_results


@pytest.fixture
def actions(db, notifier):
    return SessionActions(db, notifier)


async def test_full_session_flow(db, players, breakdown, actions, notifier):
    session_id = await create_session(db, 12, three_round_results(players))

    check = await actions.can_finalize_standings(session_id)
    assert check.success and check.data.can_finalize
    assert check.error is None and check.error_type is None

    finalized = await actions.finalize_standings(session_id, OWNER_ID)
    assert finalized.success
    assert len(finalized.placements) == 6
    assert (await actions.is_finalized(session_id)).data is True

    status = await actions.get_victory_point_offer_status(session_id)
    assert status.success and status.can_offer
    assert status.current_offer_rank == 1
    assert status.state == Offered(rank=1)

    passed = await actions.pass_victory_point(session_id, 1, OWNER_ID)
    assert passed.success and passed.next_rank == 2

    accepted = await actions.accept_victory_point(session_id, players['P3'], OWNER_ID)
    assert accepted.success
    assert accepted.granted_to == players['P3']
    assert len(accepted.wallet_awards) == 4

    status = await actions.get_victory_point_offer_status(session_id)
    assert status.already_assigned
    assert status.state == Accepted(player_id=players['P3'])
    assert status.current_offer_rank is None

    leaderboard = await actions.get_victory_point_leaderboard()
    assert leaderboard.data[0].player_id == players['P3']
    assert (await actions.get_wallet_leaderboard()).data[0].amount == 10


async def test_errors_become_results(db, players, breakdown, actions):
    session_id = await create_session(db, 12, three_round_results(players))

    denied = await actions.finalize_standings(session_id, STRANGER_ID)
    assert not denied.success
    assert denied.error == "❌ Admin access required"
    assert denied.error_type == "AuthorizationError"

    missing = await actions.get_standings(999)
    assert not missing.success and missing.error
    assert missing.error_type == "NotFoundError"

    early = await actions.accept_victory_point(session_id, players['P1'], OWNER_ID)
    assert not early.success and "finalized" in early.error
    assert early.error_type == "StateConflictError"

    invalid = await actions.create_breakdown("", [1, 1, 1, 1, 1, 1], OWNER_ID)
    assert not invalid.success
    assert invalid.error_type == "ValidationError"


async def test_unexpected_errors_are_reported_generically(db, players, actions, monkeypatch):
    async def explode(session_id=None):
        raise RuntimeError("database went away")

    monkeypatch.setattr(actions.standings, 'get_standings', explode)

    result = await actions.get_standings()
    assert not result.success
    assert result.error == GENERIC_ERROR
    assert result.error_type == UNEXPECTED_ERROR_TYPE


async def test_sessions_and_breakdowns_through_facade(db, players, breakdown, actions):
    await create_session(db, 12, [])

    sessions = await actions.get_sessions()
    assert sessions.success and [s.number for s in sessions.data] == [12]

    created = await actions.create_breakdown("Alt", [2, 2, 2, 2, 2, 2], OWNER_ID)
    assert created.success
    assert (await actions.set_active_breakdown(created.data.id, OWNER_ID)).success
    assert not (await actions.delete_breakdown(created.data.id, OWNER_ID)).success
    assert (await actions.delete_breakdown(breakdown, OWNER_ID)).success
    assert [b.name for b in (await actions.list_breakdowns()).data] == ["Alt"]
