"""Data models for multi-Vt optimization"""

from .common import ExitReason, RankingEntry, SavingMode, Strategy, UndoRecord, Variant
from .leakage import LeakageSavingTable
from .report import GlobalResult, LocalResult, OptimizationReport
from .technology import STEP_DOWN, STEP_UP, Transition, VariantModel

__all__ = [
    "SavingMode",
    "Strategy",
    "ExitReason",
    "Variant",
    "RankingEntry",
    "UndoRecord",
    "LeakageSavingTable",
    "LocalResult",
    "GlobalResult",
    "OptimizationReport",
    "Transition",
    "VariantModel",
    "STEP_UP",
    "STEP_DOWN",
]
