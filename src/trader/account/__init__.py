"""Account capital policy and balance history."""

from trader.account.capital import CapitalInjectionPolicy
from trader.account.tracker import BalanceMetrics, BalanceReason, BalanceTracker, BalanceUpdate

__all__ = [
    "BalanceMetrics",
    "BalanceReason",
    "BalanceTracker",
    "BalanceUpdate",
    "CapitalInjectionPolicy",
]
