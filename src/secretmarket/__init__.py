"""Secret prediction market — commit, resolve, reveal, claim."""

from secretmarket.engine.phase_gate import Operation, Phase, PhaseGate
from secretmarket.engine.prediction_market import PredictionMarket
from secretmarket.models.market import (
    Choice,
    Deadlines,
    Direct,
    MarketParams,
    PredictionCommit,
    Relayed,
)
from secretmarket.oracle.price_feed import ChainlinkPriceFeed, PriceFeed, StaticPriceFeed

__all__ = [
    "ChainlinkPriceFeed",
    "Choice",
    "Deadlines",
    "Direct",
    "MarketParams",
    "Operation",
    "Phase",
    "PhaseGate",
    "PredictionCommit",
    "PredictionMarket",
    "PriceFeed",
    "Relayed",
    "StaticPriceFeed",
]
