"""Two-way sync between the aggregate file and the skills directory.

This package provides:
- Reconciler: a pure decision function over snapshots of both sides
- Conflict policy: who wins when both sides edited the same skill
- Sync state: the baseline and generation counter kept between runs
"""

from prime_agent.sync.reconciler import (
    Action,
    ConflictPolicy,
    Decision,
    SyncPlan,
    digest,
    reconcile,
)
from prime_agent.sync.state import SyncState, SyncStateStore

__all__ = [
    "Action",
    "ConflictPolicy",
    "Decision",
    "SyncPlan",
    "SyncState",
    "SyncStateStore",
    "digest",
    "reconcile",
]
