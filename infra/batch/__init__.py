from infra.batch.schemas import (
    BatchJob,
    BatchState,
    BatchType,
    STATE_MAP,
    normalize_state,
    Submitted,
    NoPages,
    PrepareFailed,
    PollResult,
)
from infra.batch.reconcile import reconcile, pair_responses, ReconcileDecision
from infra.batch.reconciler import BatchReconciler
from infra.batch.submission import BatchSubmitter
from infra.batch.sync import BatchSync, SyncReport

__all__ = [
    "BatchJob",
    "BatchState",
    "BatchType",
    "STATE_MAP",
    "normalize_state",
    "Submitted",
    "NoPages",
    "PrepareFailed",
    "PollResult",
    "reconcile",
    "pair_responses",
    "ReconcileDecision",
    "BatchReconciler",
    "BatchSubmitter",
    "BatchSync",
    "SyncReport",
]
