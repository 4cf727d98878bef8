"""
Operations layer: pure ranking logic with no database access.

- MatchResultAggregator: folds pairings into per-player stats
- TiebreakRanker: orders stats under the standings or offer policy
"""
