"""
Shared fixtures for the prog session engine tests.

Each test gets its own temp-file SQLite database through aiosqlite so that
concurrent transactions use separate connections and real file locking.
"""

from typing import Dict, List, Tuple

import pytest

from prog_arc.config import Config
from prog_arc.database.database import Database
from prog_arc.database.models import (
    AdminRole, Pairing, Player, ProgSession, WalletPointBreakdown
)
from prog_arc.services.notifications import NotificationDispatcher
from prog_arc.services.standings import StandingsService
from prog_arc.utils.exceptions import ExternalDependencyError

OWNER_ID = 1000
ADMIN_ID = 2000
STRANGER_ID = 3000

BREAKDOWN_POINTS = [10, 8, 6, 4, 2, 1]

# Expected orders for three_round_results
STANDINGS_ORDER = ['P1', 'P2', 'P3', 'P5', 'P4', 'P6']
OFFER_ORDER = ['P1', 'P3', 'P2', 'P4', 'P5', 'P6']


class RecordingNotifier(NotificationDispatcher):
    """Captures every dispatched event; optionally fails like a dead backend."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: List[Tuple[str, int]] = []

    async def notify(self, event_type, session_id, details=None):
        if self.fail:
            raise ExternalDependencyError("test backend", "unreachable")
        self.events.append((event_type, session_id))

    @property
    def event_types(self) -> List[str]:
        return [event_type for event_type, _ in self.events]


@pytest.fixture(autouse=True)
def owner_id(monkeypatch):
    monkeypatch.setattr(Config, 'OWNER_DISCORD_ID', OWNER_ID)
    return OWNER_ID


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'prog_arc_test.db'}")
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def players(db) -> Dict[str, int]:
    """Six players P1..P6 plus an admin role row; returns name -> id."""
    async with db.transaction() as session:
        rows = [Player(name=f"P{i}", discord_id=500 + i) for i in range(1, 7)]
        session.add_all(rows)
        session.add(AdminRole(discord_id=ADMIN_ID, is_active=True))
        await session.flush()
        return {row.name: row.id for row in rows}


@pytest.fixture
async def breakdown(db) -> int:
    async with db.transaction() as session:
        row = WalletPointBreakdown(name="Standard", active=True, **dict(zip(
            ('first', 'second', 'third', 'fourth', 'fifth', 'sixth'), BREAKDOWN_POINTS
        )))
        session.add(row)
        await session.flush()
        return row.id


async def create_session(db, number: int, results, active: bool = True) -> int:
    """
    Create a session with pairings.

    Args:
        results: (round, player1_id, player2_id, player1_wins, player2_wins) tuples
    """
    async with db.transaction() as session:
        prog_session = ProgSession(number=number, active=active)
        session.add(prog_session)
        await session.flush()
        for round_number, p1, p2, w1, w2 in results:
            session.add(Pairing(
                session_id=prog_session.id, round=round_number,
                player1_id=p1, player2_id=p2, player1_wins=w1, player2_wins=w2
            ))
        return prog_session.id


def three_round_results(p: Dict[str, int]):
    """
    Three complete rounds, six players, every match decided.

    Match wins: P1 3, P2 2, P3 2, P4 1, P5 1, P6 0. The two policies break
    the 2-win and 1-win ties differently, see STANDINGS_ORDER and OFFER_ORDER.
    """
    return [
        (1, p['P1'], p['P2'], 2, 1),
        (1, p['P3'], p['P4'], 2, 0),
        (1, p['P5'], p['P6'], 2, 0),
        (2, p['P1'], p['P3'], 2, 0),
        (2, p['P2'], p['P5'], 2, 0),
        (2, p['P4'], p['P6'], 2, 1),
        (3, p['P1'], p['P4'], 2, 1),
        (3, p['P2'], p['P6'], 2, 0),
        (3, p['P3'], p['P5'], 2, 1),
    ]


@pytest.fixture
async def finalized_session(db, players, breakdown) -> int:
    """Active session whose standings are finalized, ready for the offer."""
    session_id = await create_session(db, 12, three_round_results(players))
    await StandingsService(db.session_factory).finalize_standings(session_id, OWNER_ID)
    return session_id
