"""Reconciliation and normalization of fetched or imported ledger data."""

from payback.reconciliation.identity import (
    ResolutionResult,
    current_user_id_count,
    find_alias,
    resolve_aliases,
    rewrite_expense,
)
from payback.reconciliation.merge import (
    derive_friends,
    find_direct_group,
    has_other_members,
    is_direct_group,
    merge_by_id,
    self_only_group_ids,
)
from payback.reconciliation.normalizer import NormalizedBatch, normalize_batch
from payback.reconciliation.synthesizer import (
    placeholder_name,
    synthesize_group,
    synthesize_missing_groups,
)

__all__ = [
    # Identity
    "ResolutionResult",
    "current_user_id_count",
    "find_alias",
    "resolve_aliases",
    "rewrite_expense",
    # Merge
    "derive_friends",
    "find_direct_group",
    "has_other_members",
    "is_direct_group",
    "merge_by_id",
    "self_only_group_ids",
    # Pipeline
    "NormalizedBatch",
    "normalize_batch",
    # Synthesis
    "placeholder_name",
    "synthesize_group",
    "synthesize_missing_groups",
]
