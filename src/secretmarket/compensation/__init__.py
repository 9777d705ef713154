"""Compensation subsystem — stake custody and payout arithmetic."""

from secretmarket.compensation.escrow import Custody, StakeRecord, StakeState, Transfer
from secretmarket.compensation.payout import PayoutEngine, PotSummary

__all__ = [
    "Custody",
    "PayoutEngine",
    "PotSummary",
    "StakeRecord",
    "StakeState",
    "Transfer",
]
