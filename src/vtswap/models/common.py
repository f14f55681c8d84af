"""Common type definitions and enumerations shared across VtSwap models.

This module defines the small value types that flow between the optimizer
components: library cell variants, ranking entries, undo records and the
enumerations that select the fast or accurate flavor of each step.
"""

from enum import Enum
from typing import Any, NamedTuple


class SavingMode(str, Enum):
    """Candidate selection mode for leakage estimation and global ranking.

    - FULL: every cell not already at the highest Vt group.
    - FAST: only cells at the lowest Vt group (single-step estimate).
    """

    FULL = "full"
    FAST = "fast"


class Strategy(str, Enum):
    """Optimization recipe chosen by the orchestrator."""

    ACCURATE = "accurate"
    FAST = "fast"


class ExitReason(str, Enum):
    """Why the global optimization loop stopped."""

    CONVERGED = "converged"  # No feasible candidate left
    TIME_BUDGET = "time_budget"  # Next iteration predicted to overrun
    LOCKSTEP = "lockstep"  # Ranking repeats itself


class Variant(NamedTuple):
    """A library cell reference: the library name and the cell name in it."""

    library: str
    ref_name: str

    @property
    def full_name(self) -> str:
        """Returns the qualified name, e.g. ``CORE65LPSVT/HS65_LS_NAND2X7``."""
        return f"{self.library}/{self.ref_name}"

    @classmethod
    def parse(cls, full_name: str) -> "Variant":
        """Splits a qualified ``library/ref_name`` string.

        Raises:
            ValueError: If the string has no library part.
        """
        library, sep, ref_name = full_name.partition("/")
        if not sep or not library or not ref_name:
            raise ValueError(f"Expected 'library/ref_name', got '{full_name}'")
        return cls(library, ref_name)

    def __str__(self) -> str:
        return self.full_name


class RankingEntry(NamedTuple):
    """A swap candidate produced by a ranker.

    Attributes:
        cost: Ranking cost, lower is better.
        library: Library of the cell's current variant.
        ref_name: Cell name of the current variant; the swap target is resolved
            from (library, ref_name) through the VariantModel.
        class_key: Design-level base name used to index leakage data.
        cell: The cell handle owned by the design database.
    """

    cost: float
    library: str
    ref_name: str
    class_key: Any
    cell: Any

    @property
    def variant(self) -> Variant:
        return Variant(self.library, self.ref_name)


class UndoRecord(NamedTuple):
    """The variant a cell had before a swap."""

    cell: Any
    library: str
    ref_name: str

    @property
    def variant(self) -> Variant:
        return Variant(self.library, self.ref_name)
