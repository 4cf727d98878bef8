"""
Engine-wide constants for the prog session engine.

This module contains the fixed names and values shared across the ranking,
finalize and Victory Point code paths.
"""

class PlacementConstants:
    """Constants related to finalized session placements."""

    # Session columns holding the finalized top placements, in rank order
    PLACEMENT_FIELDS = ('first', 'second', 'third', 'fourth', 'fifth', 'sixth')

    # Minimum distinct players needed before standings can be finalized
    MIN_PLAYERS_TO_FINALIZE = 6

class WalletConstants:
    """Constants for wallet ledger entries."""

    # Transaction type written when wallet points are handed out with a VP grant
    VICTORY_POINT_AWARD = "VICTORY_POINT_AWARD"

    # Breakdown columns, adjusted placement order
    BREAKDOWN_FIELDS = ('first', 'second', 'third', 'fourth', 'fifth', 'sixth')

class NotificationEvents:
    """Event types understood by the notification consumer."""

    STANDINGS = "standings"
    LEADERBOARD = "leaderboard"
    WALLET_UPDATE = "wallet-update"

class UIConstants:
    """Constants for Discord notification embeds."""

    DEFAULT_EMBED_COLOR = 0x3498db  # Blue
    GOLD_RANK_COLOR = 0xffd700     # Gold for Victory Point grants
    SUCCESS_COLOR = 0x2ecc71       # Green for finalized standings

    TROPHY_EMOJI = "🏆"
    WALLET_EMOJI = "💰"
