"""Swap candidate ranking.

Rankers list the cells that can still move up the Vt ladder, each with a cost
(lower is better), sorted by increasing cost. The design is assumed to meet
timing when a ranking is requested.

- ``LocalRanker`` only looks at each cell's own slack, which is cheap.
- ``GlobalRanker`` performs a "what if" swap of every candidate and measures
  the effect on the worst slack of the whole design, which is accurate but
  costs one timing update per candidate.
"""

import logging
from collections.abc import Callable
from enum import Enum
from operator import attrgetter
from typing import Optional

from ..database.base import CellMutator, CellQuery, TimingOracle
from ..models.common import RankingEntry, SavingMode
from ..models.leakage import LeakageSavingTable
from ..models.technology import STEP_UP, VariantModel

logger = logging.getLogger(__name__)

Ranker = Callable[[], list[RankingEntry]]

_by_cost = attrgetter("cost")


class RankingStrategy(str, Enum):
    """Local ranking cost functions."""

    SLACK_LEAKAGE = "slack-leakage"
    SLACK_ONLY = "slack-only"


class LocalRanker:
    """Ranks candidates from per-cell slack, without any trial swap.

    The cell's slack is the minimum slack of its pins, which is faster to
    obtain than enumerating the timing paths through the cell.

    Args:
        model: The Vt ladder and transition rules.
        cells: Cell query interface.
        timing: Timing oracle.
        table: Leakage savings, required by ``rank_by_slack_and_leakage`` only.
    """

    def __init__(
        self,
        model: VariantModel,
        cells: CellQuery,
        timing: TimingOracle,
        table: Optional[LeakageSavingTable] = None,
    ):
        self.model = model
        self.cells = cells
        self.timing = timing
        self.table = table

    def rank_by_slack_and_leakage(self) -> list[RankingEntry]:
        """Ranks every cell not already at the highest Vt group.

        The cost ``1 / (slack * saving)`` rewards both a large leakage saving
        and a large slack. Cells whose slack or saving is not positive have
        no meaningful cost and are left out.

        Raises:
            ValueError: If the ranker was built without a leakage table.
            MissingLeakageDataError: If a candidate was never estimated.
        """
        if self.table is None:
            raise ValueError("Slack and leakage ranking requires a leakage saving table")

        ranking = []
        for cell in self.cells.get_cells(self.model.swappable_groups(SavingMode.FULL)):
            library, ref_name = self.cells.variant(cell)
            class_key = self.cells.class_key(cell)

            slack = self.timing.pin_slack(cell)
            saving = self.table.saving(class_key, ref_name)
            if slack <= 0 or saving <= 0:
                logger.debug(f"Skipping {cell}: slack {slack}, saving {saving}")
                continue
            cost = 1.0 / (slack * saving)
            ranking.append(RankingEntry(cost, library, ref_name, class_key, cell))

        ranking.sort(key=_by_cost)
        return ranking

    def rank_by_slack_only(self) -> list[RankingEntry]:
        """Ranks the cells at the lowest Vt group by decreasing slack.

        Optimized for speed: no leakage data is used, the cost is the
        negated slack so that minimum cost means highest slack.
        """
        ranking = []
        for cell in self.cells.get_cells(self.model.swappable_groups(SavingMode.FAST)):
            library, ref_name = self.cells.variant(cell)
            slack = self.timing.pin_slack(cell)
            ranking.append(RankingEntry(-slack, library, ref_name, self.cells.class_key(cell), cell))

        ranking.sort(key=_by_cost)
        return ranking

    def ranker(self, strategy: RankingStrategy) -> Ranker:
        """Returns the ranking method implementing a strategy."""
        if strategy is RankingStrategy.SLACK_ONLY:
            return self.rank_by_slack_only
        return self.rank_by_slack_and_leakage


class GlobalRanker:
    """Ranks candidates by worst-slack reduction per unit of leakage saving.

    See M. Rahman and C. Sechen, "Post-synthesis leakage power minimization,"
    DATE 2012, pp. 99-104, doi: 10.1109/DATE.2012.6176440.

    Args:
        model: The Vt ladder and transition rules.
        cells: Cell query interface.
        timing: Timing oracle.
        mutator: Cell mutation interface, used for the trial swaps.
        table: Leakage savings of every candidate.
    """

    def __init__(
        self,
        model: VariantModel,
        cells: CellQuery,
        timing: TimingOracle,
        mutator: CellMutator,
        table: LeakageSavingTable,
    ):
        self.model = model
        self.cells = cells
        self.timing = timing
        self.mutator = mutator
        self.table = table

    def rank_by_global_slack_reduction(
        self, mode: SavingMode = SavingMode.FULL
    ) -> list[RankingEntry]:
        """Ranks candidates by ``(slack_before - slack_after) / saving``.

        Every candidate is swapped to its higher-Vt alternative, the worst
        slack is read back and the swap is undone: two swaps and one implicit
        timing update per cell. A candidate whose trial swap would leave the
        design with negative slack is dropped from the ranking.

        Args:
            mode: FULL ranks every cell not at the highest Vt group, FAST only
                the cells at the lowest group.

        Raises:
            MissingLeakageDataError: If a candidate was never estimated.
        """
        ranking = []
        global_slack = self.timing.worst_slack()

        for cell in self.cells.get_cells(self.model.swappable_groups(mode)):
            variant = self.cells.variant(cell)
            class_key = self.cells.class_key(cell)

            saving = self.table.saving(class_key, variant.ref_name)
            if saving <= 0:
                logger.debug(f"Skipping {cell}: no leakage saving ({saving})")
                continue

            # total slack reduction is computed on the fly
            self.mutator.size_cell(
                cell, self.model.resolve_alternative(variant.library, variant.ref_name, STEP_UP)
            )
            new_global_slack = self.timing.worst_slack()
            self.mutator.size_cell(cell, variant)

            if new_global_slack >= 0:
                cost = (global_slack - new_global_slack) / saving
                ranking.append(RankingEntry(cost, variant.library, variant.ref_name, class_key, cell))

        ranking.sort(key=_by_cost)
        return ranking

    def ranker(self, mode: SavingMode = SavingMode.FULL) -> Ranker:
        """Returns a zero-argument ranker bound to ``mode``."""
        return lambda: self.rank_by_global_slack_reduction(mode)
