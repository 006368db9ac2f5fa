"""
Ledger Core - pending changes awaiting review.
"""

from eduscope.kernel.ledger.pending_change_ledger import PendingChangeLedger

__all__ = ["PendingChangeLedger"]
