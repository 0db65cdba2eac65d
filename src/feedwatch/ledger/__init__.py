"""Deduplication ledger."""

from feedwatch.ledger.reconcile import Reconciliation, reconcile, seed

__all__ = ["Reconciliation", "reconcile", "seed"]
