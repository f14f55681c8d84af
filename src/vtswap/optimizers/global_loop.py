"""Global Vt assignment loop.

The global nature of the optimization comes from the ranking function, which
performs "what if" analyses to account for the effect of each swap on the
whole design. Because ranking is expensive the loop is time aware: the
duration of its iterations is tracked with an exponential moving average to
predict whether one more iteration would still complete within the budget.

Within an iteration the ranked candidates are swapped ``batch_size`` at a
time, with a forced full timing update after every batch. A batch that
violates timing is undone and the pass resumes from the same position with a
batch one cell smaller, down to zero.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from ..database.base import TimingOracle
from ..models.common import ExitReason, RankingEntry
from ..models.report import GlobalResult
from .ranking import Ranker
from .swap import SwapExecutor

logger = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.3


@dataclass
class BudgetState:
    """Time budget of the global loop.

    Attributes:
        start_time: When the whole optimization started (clock seconds).
        max_duration: Maximum runtime of the whole optimization, in seconds.
        alpha: EMA smoothing factor.
        dt: Predicted duration of the next iteration, None until one has run.
    """

    start_time: float
    max_duration: float
    alpha: float = DEFAULT_ALPHA
    dt: Optional[float] = None

    @property
    def deadline(self) -> float:
        return self.start_time + self.max_duration

    def record(self, duration: float) -> float:
        """Folds an iteration duration into the moving average and returns it."""
        if self.dt is None:
            self.dt = duration
        else:
            self.dt = self.alpha * duration + (1 - self.alpha) * self.dt
        return self.dt

    def exhausted(self, now: float) -> bool:
        """True if one more iteration is predicted to overrun the deadline."""
        return self.dt is not None and now + self.dt >= self.deadline


def same_candidates(ranking: list[RankingEntry], previous: list[RankingEntry]) -> bool:
    """True if two rankings propose the same multiset of cell classes."""
    if len(ranking) != len(previous):
        return False
    return Counter(e.class_key for e in ranking) == Counter(e.class_key for e in previous)


class GlobalOptimizationLoop:
    """Time-budgeted, batch-adaptive swap loop driven by a global ranker.

    Args:
        ranker: Zero-argument callable returning the ranked candidates,
            typically ``GlobalRanker.ranker(mode)``.
        executor: Applies and reverts swap batches.
        timing: Timing oracle gating every batch.
        budget: Start time and maximum duration of the optimization.
        initial_batch_size: Number of cells swapped at a time in the first
            attempt of every iteration (>= 1).
        fast_mode: Disables lockstep detection. With the lower accuracy of
            incremental timing updates a cell may repeatedly be ranked as
            eligible and then violate timing once swapped, which would be
            mistaken for a lockstep.
        clock: Time source in seconds.
    """

    def __init__(
        self,
        ranker: Ranker,
        executor: SwapExecutor,
        timing: TimingOracle,
        budget: BudgetState,
        initial_batch_size: int = 4,
        fast_mode: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        if initial_batch_size < 1:
            raise ValueError(f"initial_batch_size must be >= 1, got {initial_batch_size}")
        self.ranker = ranker
        self.executor = executor
        self.timing = timing
        self.budget = budget
        self.initial_batch_size = initial_batch_size
        self.fast_mode = fast_mode
        self.clock = clock

    def _swap_pass(self, ranking: list[RankingEntry], result: GlobalResult) -> None:
        """Swaps as many ranked cells as possible without violating timing."""
        n_swappable = len(ranking)
        batch_size = self.initial_batch_size
        n = 0

        while True:
            violation = False
            while n < n_swappable:
                batch = ranking[n : n + batch_size]
                logger.debug(f"(global) Swapping {len(batch)} at a time, from {n} ...")
                undo_list = self.executor.apply_batch(batch)
                self.timing.update_timing()

                # if there is a violation, unswap the last batch
                if self.timing.worst_slack() < 0:
                    logger.debug(f"(global) Unswapping {len(undo_list)} ...")
                    self.executor.revert_batch(undo_list)
                    result.rejected_batches += 1
                    violation = True
                    batch_size -= 1
                    break

                result.accepted_batches += 1
                result.cells_swapped += len(undo_list)
                n += batch_size

            # until all is done with no violation, or there is no batch size left to try
            if not violation or batch_size == 0:
                logger.debug(f"(global) Done: n = {n} ...")
                return
            logger.debug(f"(global) Restarting from {n}, {batch_size} at a time ...")

    def run(self) -> GlobalResult:
        """Runs the loop until convergence, lockstep or time budget exhaustion.

        The design always ends in a state validated by a full timing update
        (or untouched): a violating batch is undone before any other decision.
        """
        result = GlobalResult()

        t0 = self.clock()
        ranking = self.ranker()

        # as long as there are candidates
        while ranking:
            logger.debug(f"(global) {len(ranking)} candidates found ...")
            result.iterations += 1
            self._swap_pass(ranking, result)

            # update the average iteration duration and check if there's time for one more
            t1 = self.clock()
            dt = self.budget.record(t1 - t0)
            result.dt = dt
            logger.debug(f"(global) @ {t1:.3f}: dt = {dt:.3f}")
            if self.budget.exhausted(t1):
                logger.info("(global) Time is up ...")
                result.exit_reason = ExitReason.TIME_BUDGET
                break

            # if there is time, prepare the new iteration
            t0 = self.clock()
            previous = ranking
            ranking = self.ranker()

            # if not in fast mode, check that the candidates are different to prevent locksteps
            if not self.fast_mode and same_candidates(ranking, previous):
                logger.info("(global) Lockstep. Aborting ...")
                result.exit_reason = ExitReason.LOCKSTEP
                break
        else:
            result.exit_reason = ExitReason.CONVERGED

        logger.info(
            f"Global optimization done ({result.exit_reason.value}): {result.cells_swapped} "
            f"swaps over {result.iterations} iteration(s)"
        )
        return result
