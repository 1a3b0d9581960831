"""Reconciliation engine and fee matching strategies."""

from .engine import TransactionReconciler, reconcile
from .strategies import (
    MatchingStrategy,
    ReferenceInstantAmountStrategy,
    ReferenceInstantStrategy,
)

__all__ = [
    "TransactionReconciler",
    "reconcile",
    "MatchingStrategy",
    "ReferenceInstantAmountStrategy",
    "ReferenceInstantStrategy",
]
