from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Text,
    ForeignKey, BigInteger, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
from typing import List, Optional

from prog_arc.constants import PlacementConstants, WalletConstants

Base = declarative_base()

class Player(Base):
    __tablename__ = 'players'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    discord_id = Column(BigInteger, unique=True, nullable=True, index=True)

    # Metadata
    registered_at = Column(DateTime, default=func.now())

    # Relationships
    wallet = relationship("Wallet", back_populates="player", uselist=False)
    victory_points = relationship("VictoryPoint", back_populates="player")

    def __repr__(self):
        return f"<Player(id={self.id}, name='{self.name}')>"

class ProgSession(Base):
    """
    A weekly prog session.

    Placement columns are written once by the standings finalizer. The two
    assignment flags are written once by the Victory Point offer. offer_rank
    is the persisted Offered(rank) state of the offer cascade.
    """
    __tablename__ = 'sessions'

    id = Column(Integer, primary_key=True)
    number = Column(Integer, nullable=False, unique=True)
    date = Column(DateTime, default=func.now())
    active = Column(Boolean, default=False, nullable=False)

    # Top placements (player ids), null until finalized
    first = Column(Integer, ForeignKey('players.id'), nullable=True)
    second = Column(Integer, ForeignKey('players.id'), nullable=True)
    third = Column(Integer, ForeignKey('players.id'), nullable=True)
    fourth = Column(Integer, ForeignKey('players.id'), nullable=True)
    fifth = Column(Integer, ForeignKey('players.id'), nullable=True)
    sixth = Column(Integer, ForeignKey('players.id'), nullable=True)

    # Victory Point offer state
    victory_points_assigned = Column(Boolean, default=False, nullable=False)
    wallet_points_assigned = Column(Boolean, default=False, nullable=False)
    offer_rank = Column(Integer, default=1, nullable=False)

    # Relationships
    pairings = relationship("Pairing", back_populates="session", cascade="all, delete-orphan")
    victory_points = relationship("VictoryPoint", back_populates="session")

    __table_args__ = (
        CheckConstraint('offer_rank >= 1', name='ck_session_offer_rank_positive'),
    )

    @property
    def placements(self) -> List[Optional[int]]:
        return [getattr(self, field) for field in PlacementConstants.PLACEMENT_FIELDS]

    @property
    def is_finalized(self) -> bool:
        return all(player_id is not None for player_id in self.placements)

    def __repr__(self):
        return f"<ProgSession(number={self.number}, active={self.active}, finalized={self.is_finalized})>"

class Pairing(Base):
    __tablename__ = 'pairings'

    id = Column(Integer, primary_key=True)
    session_id = Column(Integer, ForeignKey('sessions.id'), nullable=False, index=True)
    round = Column(Integer, nullable=False)

    player1_id = Column(Integer, ForeignKey('players.id'), nullable=False)
    player2_id = Column(Integer, ForeignKey('players.id'), nullable=False)
    player1_wins = Column(Integer, default=0, nullable=False)
    player2_wins = Column(Integer, default=0, nullable=False)

    # Relationships
    session = relationship("ProgSession", back_populates="pairings")
    player1 = relationship("Player", foreign_keys=[player1_id])
    player2 = relationship("Player", foreign_keys=[player2_id])

    def __repr__(self):
        return (f"<Pairing(session_id={self.session_id}, round={self.round}, "
                f"{self.player1_id} {self.player1_wins}-{self.player2_wins} {self.player2_id})>")

class VictoryPoint(Base):
    __tablename__ = 'victory_points'

    id = Column(Integer, primary_key=True)
    player_id = Column(Integer, ForeignKey('players.id'), nullable=False, index=True)
    session_id = Column(Integer, ForeignKey('sessions.id'), nullable=False, index=True)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    # Relationships
    player = relationship("Player", back_populates="victory_points")
    session = relationship("ProgSession", back_populates="victory_points")

    def __repr__(self):
        return f"<VictoryPoint(player_id={self.player_id}, session_id={self.session_id})>"

class Wallet(Base):
    """Wallet balance; amount is a cache of the sum of its transactions."""
    __tablename__ = 'wallets'

    id = Column(Integer, primary_key=True)
    player_id = Column(Integer, ForeignKey('players.id'), nullable=False, unique=True)
    amount = Column(Integer, default=0, nullable=False)

    # Relationships
    player = relationship("Player", back_populates="wallet")
    transactions = relationship("WalletTransaction", back_populates="wallet")

    def __repr__(self):
        return f"<Wallet(player_id={self.player_id}, amount={self.amount})>"

class WalletTransaction(Base):
    """
    Append-only wallet transaction ledger.

    Each row records a signed change to a wallet; the wallet's amount is
    updated in the same database transaction as the append.
    """
    __tablename__ = 'wallet_transactions'

    id = Column(Integer, primary_key=True)
    wallet_id = Column(Integer, ForeignKey('wallets.id'), nullable=False, index=True)
    session_id = Column(Integer, ForeignKey('sessions.id'), nullable=True, index=True)

    amount = Column(Integer, nullable=False)  # Can be positive or negative
    type = Column(String(50), nullable=False, default=WalletConstants.VICTORY_POINT_AWARD)
    description = Column(String(255), nullable=True)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    # Relationships
    wallet = relationship("Wallet", back_populates="transactions")
    session = relationship("ProgSession")

    def __repr__(self):
        return f"<WalletTransaction(wallet_id={self.wallet_id}, amount={self.amount}, type='{self.type}')>"

class WalletPointBreakdown(Base):
    """Wallet point schedule by adjusted placement. One breakdown is active at a time."""
    __tablename__ = 'wallet_point_breakdowns'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)

    first = Column(Integer, default=0, nullable=False)
    second = Column(Integer, default=0, nullable=False)
    third = Column(Integer, default=0, nullable=False)
    fourth = Column(Integer, default=0, nullable=False)
    fifth = Column(Integer, default=0, nullable=False)
    sixth = Column(Integer, default=0, nullable=False)

    active = Column(Boolean, default=False, nullable=False)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    @property
    def points(self) -> List[int]:
        return [getattr(self, field) for field in WalletConstants.BREAKDOWN_FIELDS]

    def __repr__(self):
        return f"<WalletPointBreakdown(name='{self.name}', points={self.points}, active={self.active})>"

class AdminRole(Base):
    __tablename__ = 'admin_roles'

    id = Column(Integer, primary_key=True)
    discord_id = Column(BigInteger, nullable=False, unique=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Metadata
    granted_at = Column(DateTime, default=func.now())

    def __repr__(self):
        return f"<AdminRole(discord_id={self.discord_id}, active={self.is_active})>"

class AuditLog(Base):
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True)
    user_id = Column(BigInteger, nullable=False)  # Discord ID of the acting admin
    action = Column(String(50), nullable=False)   # e.g. "standings_finalized", "victory_point_granted"
    details = Column(Text)                        # JSON

    # Metadata
    created_at = Column(DateTime, default=func.now())

    def __repr__(self):
        return f"<AuditLog(user_id={self.user_id}, action='{self.action}')>"
