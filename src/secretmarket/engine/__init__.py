"""Market engine — phase gate and the prediction market state machine."""

from secretmarket.engine.phase_gate import Operation, Phase, PhaseGate
from secretmarket.engine.prediction_market import PredictionMarket

__all__ = ["Operation", "Phase", "PhaseGate", "PredictionMarket"]
