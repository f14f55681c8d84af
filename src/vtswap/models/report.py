"""Pydantic models describing the outcome of an optimization run.

These models define the schema of the JSON report written by ``vtswap run``.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .common import ExitReason, Strategy


class LocalResult(BaseModel):
    """Outcome of the local (wholesale swap and derate) loop."""

    accepted_batches: int = 0
    rejected_batches: int = 0
    cells_swapped: int = Field(default=0, description="Swaps committed by accepted batches")


class GlobalResult(BaseModel):
    """Outcome of the time-budgeted global loop."""

    iterations: int = 0
    accepted_batches: int = 0
    rejected_batches: int = 0
    cells_swapped: int = Field(default=0, description="Swaps committed by accepted batches")
    exit_reason: ExitReason = ExitReason.CONVERGED
    dt: Optional[float] = Field(
        default=None, description="EMA of the iteration duration in seconds"
    )


class OptimizationReport(BaseModel):
    """Summary of a full multi-Vt recipe run."""

    strategy: Strategy
    cell_count: int
    initial_slack: float
    final_slack: float
    leakage_table_size: int = 0
    local: LocalResult = Field(default_factory=LocalResult)
    global_: GlobalResult = Field(default_factory=GlobalResult, alias="global")
    elapsed: float = Field(default=0.0, description="Wall-clock seconds")
    swap_operations: int = Field(
        default=0, description="Variant changes issued by both loops, reverts included"
    )
    initial_leakage: Optional[float] = None
    final_leakage: Optional[float] = None

    model_config = {"populate_by_name": True}

    @property
    def cells_swapped(self) -> int:
        return self.local.cells_swapped + self.global_.cells_swapped

    @property
    def leakage_reduction(self) -> Optional[float]:
        """Relative leakage reduction, when both totals are known."""
        if self.initial_leakage is None or self.final_leakage is None or not self.initial_leakage:
            return None
        return 1.0 - self.final_leakage / self.initial_leakage
