"""Leakage power saving estimation.

For every library cell used by a swappable design cell, the saving of moving
one step up the Vt ladder is measured on the design itself:

1. read the leakage of a design cell mapped to it,
2. swap that cell to its higher-Vt alternative,
3. read the leakage of the modified cell.

The read in step 3 triggers a computationally expensive power update, so it
is only issued once all swaps of a pass have been committed. One pass is run
per Vt level (FULL mode) or a single pass over the lowest-Vt cells (FAST
mode), after which every cell is restored to its original variant.
"""

import logging

from ..database.base import CellMutator, CellQuery, PowerOracle
from ..models.common import SavingMode, UndoRecord
from ..models.leakage import LeakageSavingTable
from ..models.technology import STEP_UP, VariantModel

logger = logging.getLogger(__name__)


class LeakageSavingEstimator:
    """Builds a ``LeakageSavingTable`` with one power update per ladder level.

    Args:
        model: The Vt ladder and transition rules.
        cells: Cell query interface.
        power: Power oracle.
        mutator: Cell mutation interface.
    """

    def __init__(
        self,
        model: VariantModel,
        cells: CellQuery,
        power: PowerOracle,
        mutator: CellMutator,
    ):
        self.model = model
        self.cells = cells
        self.power = power
        self.mutator = mutator

    def build_saving_table(self, mode: SavingMode = SavingMode.FULL) -> LeakageSavingTable:
        """Measures the leakage saving of one Vt step for every swappable cell.

        Args:
            mode: FULL considers every cell not already at the highest Vt
                group and walks the whole ladder. FAST restricts the analysis
                to cells at the lowest Vt group and runs a single pass.

        Returns:
            The populated table. The design is left exactly as it was found.
        """
        groups = self.model.swappable_groups(mode)
        swappable = self.cells.get_cells(groups)
        table = LeakageSavingTable()

        # Cells to modify are mapped to their initial variant
        undo_list = [UndoRecord(cell, *self.cells.variant(cell)) for cell in swappable]
        logger.debug(f"Estimating leakage savings for {len(swappable)} cells ({mode.value})")

        try:
            while swappable:
                variants = [self.cells.variant(cell) for cell in swappable]
                class_keys = [self.cells.class_key(cell) for cell in swappable]

                # leakage is read before swapping any cell of this pass
                before = self.power.leakage_power(swappable)

                for cell, variant in zip(swappable, variants):
                    target = self.model.resolve_alternative(
                        variant.library, variant.ref_name, STEP_UP
                    )
                    self.mutator.size_cell(cell, target)

                # single implicit power update after all cells are swapped
                after = self.power.leakage_power(swappable)
                table.power_updates += 1

                for class_key, variant, lkg_from, lkg_to in zip(
                    class_keys, variants, before, after
                ):
                    table.record(class_key, variant.ref_name, lkg_from - lkg_to)

                if mode is SavingMode.FAST:
                    break

                # look for cells that are still swappable
                swappable = [cell for cell in swappable if self.cells.vt_group(cell) in groups]
        finally:
            # restored even when a swap fails halfway through a pass
            for record in undo_list:
                self.mutator.size_cell(record.cell, record.variant)

        logger.info(
            f"Leakage saving table: {len(table)} entries, {table.power_updates} power update(s)"
        )
        return table
