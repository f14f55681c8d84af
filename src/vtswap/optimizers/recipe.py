"""The full multi-Vt optimization recipe.

The recipe picks a strategy from the design size and its initial timing
margin, builds the leakage saving table once, harvests the easy wins with the
cheap local loop and spends the remaining time budget in the global loop.

Example:
    >>> design = SyntheticDesign.from_file("design.json")
    >>> report = MultiVtRecipe(design, VariantModel.stcmos65()).run()
    >>> report.strategy
    <Strategy.ACCURATE: 'accurate'>
"""

import logging
import time
from collections.abc import Callable
from typing import Optional

from ..config import OptimizerConfig
from ..database.base import DesignDatabase
from ..models.common import SavingMode, Strategy
from ..models.report import OptimizationReport
from ..models.technology import VariantModel
from .global_loop import BudgetState, GlobalOptimizationLoop
from .leakage import LeakageSavingEstimator
from .local_loop import LocalOptimizationLoop
from .ranking import GlobalRanker, LocalRanker, RankingStrategy
from .swap import SwapExecutor

logger = logging.getLogger(__name__)


class MultiVtRecipe:
    """Sequences leakage estimation, local and global optimization.

    Args:
        design: The design database, mutated in place.
        model: The Vt ladder and transition rules.
        config: Recipe parameters; defaults to ``OptimizerConfig()``.
        clock: Time source in seconds.
    """

    def __init__(
        self,
        design: DesignDatabase,
        model: VariantModel,
        config: Optional[OptimizerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.design = design
        self.model = model
        self.config = config or OptimizerConfig()
        self.clock = clock

    def choose_strategy(self, cell_count: int, worst_slack: float) -> Strategy:
        """Large designs with tight timing get the fast strategy."""
        if cell_count > self.config.large_design_cells and worst_slack < self.config.tight_slack_margin:
            return Strategy.FAST
        return Strategy.ACCURATE

    def run(self) -> OptimizationReport:
        """Runs the recipe on the design and reports what was done.

        The design is left in the last state validated by a full timing update.
        """
        cfg = self.config
        start_time = self.clock()
        cell_count = self.design.cell_count()
        initial_slack = self.design.worst_slack()

        strategy = self.choose_strategy(cell_count, initial_slack)
        mode = SavingMode.FAST if strategy is Strategy.FAST else SavingMode.FULL
        logger.info(
            f"{cell_count} cells, worst slack {initial_slack:.4f}: {strategy.value} strategy"
        )

        estimator = LeakageSavingEstimator(self.model, self.design, self.design, self.design)
        table = estimator.build_saving_table(mode)

        executor = SwapExecutor(self.model, self.design)
        local_ranker = LocalRanker(self.model, self.design, self.design, table)

        if strategy is Strategy.FAST:
            local = LocalOptimizationLoop(
                local_ranker.ranker(RankingStrategy.SLACK_ONLY),
                executor,
                self.design,
                select_fraction=min(1.0, cfg.fast_local_swap_count / cell_count),
                derate_fraction=cfg.fast_derate_fraction,
            )
        else:
            local = LocalOptimizationLoop(
                local_ranker.ranker(RankingStrategy.SLACK_LEAKAGE),
                executor,
                self.design,
                select_fraction=cfg.accurate_select_fraction,
                derate_fraction=cfg.accurate_derate_fraction,
            )
        local_result = local.run()

        global_ranker = GlobalRanker(self.model, self.design, self.design, self.design, table)
        budget = BudgetState(start_time, cfg.max_duration, alpha=cfg.ema_alpha)
        global_result = GlobalOptimizationLoop(
            global_ranker.ranker(mode),
            executor,
            self.design,
            budget,
            initial_batch_size=cfg.global_batch_size,
            fast_mode=strategy is Strategy.FAST,
            clock=self.clock,
        ).run()

        return OptimizationReport(
            strategy=strategy,
            cell_count=cell_count,
            initial_slack=initial_slack,
            final_slack=self.design.worst_slack(),
            leakage_table_size=len(table),
            local=local_result,
            global_=global_result,
            elapsed=self.clock() - start_time,
            swap_operations=executor.swap_count,
        )
