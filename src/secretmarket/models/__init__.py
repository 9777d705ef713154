"""Core data models for the secret prediction market."""

from secretmarket.models.market import (
    Caller,
    Choice,
    Deadlines,
    Direct,
    MarketParams,
    PredictionCommit,
    Relayed,
)

__all__ = [
    "Caller",
    "Choice",
    "Deadlines",
    "Direct",
    "MarketParams",
    "PredictionCommit",
    "Relayed",
]
