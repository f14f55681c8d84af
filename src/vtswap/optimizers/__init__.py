"""Multi-Vt leakage optimization engine"""

from .global_loop import BudgetState, GlobalOptimizationLoop
from .leakage import LeakageSavingEstimator
from .local_loop import LocalOptimizationLoop
from .ranking import GlobalRanker, LocalRanker, RankingStrategy
from .recipe import MultiVtRecipe
from .swap import SwapExecutor

__all__ = [
    "LeakageSavingEstimator",
    "LocalRanker",
    "GlobalRanker",
    "RankingStrategy",
    "SwapExecutor",
    "LocalOptimizationLoop",
    "GlobalOptimizationLoop",
    "BudgetState",
    "MultiVtRecipe",
]
