"""
Gate module for TrendingHub.

Fetch-admission policies evaluated before a source runs.
"""

from trendinghub.services.gate.trading_session import (
    GateDecision,
    TradingSessionGate,
)

__all__ = [
    "GateDecision",
    "TradingSessionGate",
]
