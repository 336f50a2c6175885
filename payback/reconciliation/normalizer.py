"""
Normalization pipeline.

One entry point shared by the reconciliation cycle and bulk import, so a
batch is treated identically regardless of where it came from:

1. Identity resolution (alias ids -> canonical current-user id)
2. Group synthesis for expenses whose group is in neither the batch nor
   the local store
"""

from typing import Iterable
from uuid import UUID

from pydantic import BaseModel, Field

from payback.models.ledger import Expense, Friend, Group, SessionContext
from payback.reconciliation.identity import resolve_aliases
from payback.reconciliation.synthesizer import synthesize_missing_groups


class NormalizedBatch(BaseModel):
    """A batch ready to be merged into the store."""

    groups: list[Group] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    aliases: dict[UUID, UUID] = Field(default_factory=dict)
    synthesized_groups: list[Group] = Field(default_factory=list)
    # Entities to push back to the remote sources
    dirty_groups: list[Group] = Field(default_factory=list)
    dirty_expenses: list[Expense] = Field(default_factory=list)


def normalize_batch(
    groups: Iterable[Group],
    expenses: Iterable[Expense],
    ctx: SessionContext,
    known_groups: Iterable[Group] = (),
    friends: Iterable[Friend] = (),
) -> NormalizedBatch:
    """
    Normalize a fetched or imported batch.

    Args:
        groups: Groups in the batch
        expenses: Expenses in the batch
        ctx: Current session
        known_groups: Groups already in the store; they satisfy expense
            references and supply member names, but are not rewritten
        friends: Friend records used as a name source for synthesis

    Returns:
        NormalizedBatch containing resolved and synthesized groups
    """
    resolution = resolve_aliases(groups, expenses, ctx)

    batch_ids = {g.id for g in resolution.groups}
    reference_groups = resolution.groups + [
        g for g in known_groups if g.id not in batch_ids
    ]
    synthesized = synthesize_missing_groups(
        resolution.expenses, reference_groups, ctx, friends
    )

    return NormalizedBatch(
        groups=resolution.groups + synthesized,
        expenses=resolution.expenses,
        aliases=resolution.aliases,
        synthesized_groups=synthesized,
        dirty_groups=resolution.dirty_groups + synthesized,
        dirty_expenses=resolution.dirty_expenses,
    )
