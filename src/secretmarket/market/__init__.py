"""Prediction ledger — per-participant commitments, reveals, and tallies."""

from secretmarket.market.ledger import PredictionLedger, SideTally

__all__ = ["PredictionLedger", "SideTally"]
