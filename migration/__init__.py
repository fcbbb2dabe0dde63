"""
Snapshot to relational migration engine.

Modules:
    hashing: Content addressing (record hash, row key, payload checksum)
    ledger: Row ledger for per-row change detection
    context: Per-run context and the batch-scoped ID map
    runner: Batch controller (begin, apply, mark completed / failed)
    verifier: Post-migration reconciliation report
    reset: Target reset for clean re-runs

Subpackages:
    transformers: Snapshot -> Payload normalization
    appliers: One applier per entity, grouped into dependency stages

Architecture:
    1. Normalize - project the snapshot into a fixed-shape typed payload
    2. Begin - checksum the payload; an identical completed batch short-circuits
    3. Apply - stage by stage, in one transaction: ledger check, natural-key
       upsert, surrogate id published to the ID map
    4. Finalize - commit and mark completed, or roll back and mark failed

    The verifier and reset tool run as separate invocations and share no
    in-process state with the controller.

Usage:
    from migration.runner import BatchController
    from migration.verifier import ReconciliationVerifier

Example:
    controller = BatchController(session_maker)
    outcome = await controller.run(snapshot)

    print(f"Batch {outcome.batch_id}: {outcome.summary}")
"""

__all__ = [
    "BatchController",
    "PayloadNormalizer",
    "ReconciliationVerifier",
    "ResetTool",
    "RowLedger",
]
