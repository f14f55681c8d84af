"""Local Vt assignment loop.

The local nature of the optimization comes from the ranking functions, which
don't account for the effects of a swap on the whole design. The loop swaps a
fraction of the ranked candidates wholesale and keeps the batch only if the
design still meets timing; otherwise it undoes the batch and retries with a
derated share of it.

After the swap, an incremental timing update is not accurate enough to ensure
the loop ends with the design meeting its constraints, so every decision is
gated on a forced full update.
"""

import logging
import math

from ..database.base import TimingOracle
from ..models.report import LocalResult
from .ranking import Ranker
from .swap import SwapExecutor

logger = logging.getLogger(__name__)


class LocalOptimizationLoop:
    """Wholesale swap and derate loop.

    Args:
        ranker: Zero-argument callable returning the ranked candidates.
        executor: Applies and reverts swap batches.
        timing: Timing oracle gating every batch.
        select_fraction: Share of the candidates to swap wholesale, in (0, 1].
        derate_fraction: Once a wholesale swap has failed, the share of that
            batch to re-attempt, in [0, 1). Zero disables the retry.

    Raises:
        ValueError: If a fraction is out of range.
    """

    def __init__(
        self,
        ranker: Ranker,
        executor: SwapExecutor,
        timing: TimingOracle,
        select_fraction: float = 1.0,
        derate_fraction: float = 0.95,
    ):
        if not 0.0 < select_fraction <= 1.0:
            raise ValueError(f"select_fraction must be in (0, 1], got {select_fraction}")
        if not 0.0 <= derate_fraction < 1.0:
            raise ValueError(f"derate_fraction must be in [0, 1), got {derate_fraction}")
        self.ranker = ranker
        self.executor = executor
        self.timing = timing
        self.select_fraction = select_fraction
        self.derate_fraction = derate_fraction

    def _select_count(self, n_swappable: int) -> int:
        return math.ceil(n_swappable * self.select_fraction)

    def run(self) -> LocalResult:
        """Runs the loop until no candidate is left or the batch size reaches zero."""
        result = LocalResult()
        name = getattr(self.ranker, "__name__", "ranker")

        ranking = self.ranker()
        n_toswap = self._select_count(len(ranking))
        logger.debug(f"(local <{name}>) Swapping {n_toswap} ...")

        while n_toswap > 0:
            undo_list = self.executor.apply_batch(ranking[:n_toswap])
            self.timing.update_timing()

            if self.timing.worst_slack() >= 0:
                result.accepted_batches += 1
                result.cells_swapped += len(undo_list)

                # stop condition: no candidate left
                ranking = self.ranker()
                n_toswap = self._select_count(len(ranking))
                logger.debug(f"(local <{name}>) Swapping {n_toswap} ...")
            else:
                self.executor.revert_batch(undo_list)
                result.rejected_batches += 1

                # attempt a finer selection, stop condition: n_toswap -> 0
                n_toswap = math.floor(n_toswap * self.derate_fraction)
                logger.debug(
                    f"(local <{name}>) Violation detected. Attempting with {n_toswap} ..."
                )

        logger.info(
            f"Local optimization done: {result.cells_swapped} swaps in "
            f"{result.accepted_batches} batch(es), {result.rejected_batches} rejected"
        )
        return result
