"""Batch application and rollback of Vt swaps."""

from collections.abc import Iterable

from ..database.base import CellMutator
from ..models.common import RankingEntry, UndoRecord
from ..models.technology import STEP_UP, VariantModel


class SwapExecutor:
    """Swaps ranked cells to their higher-Vt alternative and undoes batches.

    Neither method triggers a timing or power update: callers decide when the
    design has to be re-analyzed.

    Attributes:
        swap_count: Number of ``size_cell`` calls issued so far.
    """

    def __init__(self, model: VariantModel, mutator: CellMutator):
        self.model = model
        self.mutator = mutator
        self.swap_count = 0

    def apply_batch(self, entries: Iterable[RankingEntry]) -> list[UndoRecord]:
        """Swaps every entry, in order, one step up the Vt ladder.

        Returns:
            The pre-swap variants, for ``revert_batch``.
        """
        undo_list = []
        for entry in entries:
            target = self.model.resolve_alternative(entry.library, entry.ref_name, STEP_UP)
            self.mutator.size_cell(entry.cell, target)
            undo_list.append(UndoRecord(entry.cell, entry.library, entry.ref_name))
            self.swap_count += 1
        return undo_list

    def revert_batch(self, undo_list: Iterable[UndoRecord]) -> None:
        """Restores every recorded cell to its pre-swap variant."""
        for record in undo_list:
            self.mutator.size_cell(record.cell, record.variant)
            self.swap_count += 1
