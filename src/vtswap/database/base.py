"""Abstract interfaces to the host design-analysis environment.

The optimizer never touches a netlist, a timing engine or a power engine
directly. It talks to one database object, passed by reference to every
component, through four capability groups:

- **CellQuery:** enumerate cells and read their attributes.
- **TimingOracle:** cheap per-cell slack, authoritative worst slack and an
  explicit full timing update.
- **PowerOracle:** batched per-cell leakage power reads.
- **CellMutator:** footprint-preserving variant changes.

Reads that follow a swap may trigger hidden recomputation in the host tool.
Implementations keep that distinction visible: ``worst_slack`` may refresh
timing incrementally, ``update_timing`` always forces a full update, and the
first ``leakage_power`` read after a swap pays for one full power update.
"""

from abc import ABC, abstractmethod
from collections.abc import Collection, Sequence
from typing import Any, Optional

from ..models.common import Variant


class CellQuery(ABC):
    """Read access to the cell instances of a design."""

    @abstractmethod
    def get_cells(self, vt_groups: Optional[Collection[str]] = None) -> list[Any]:
        """Enumerates cell handles.

        Args:
            vt_groups: If given, only cells whose library cell belongs to one
                of these Vt groups are returned.

        Returns:
            Cell handles in a stable order.
        """
        ...

    @abstractmethod
    def cell_count(self) -> int:
        """Returns the total number of cells in the design."""
        ...

    @abstractmethod
    def class_key(self, cell: Any) -> Any:
        """Returns the design-level base name used to index leakage data."""
        ...

    @abstractmethod
    def variant(self, cell: Any) -> Variant:
        """Returns the cell's current (library, ref_name) pair."""
        ...

    @abstractmethod
    def vt_group(self, cell: Any) -> str:
        """Returns the Vt group alias of the cell's current library cell."""
        ...


class TimingOracle(ABC):
    """Static timing analysis queries."""

    @abstractmethod
    def pin_slack(self, cell: Any) -> float:
        """Returns the minimum slack across the pins of a cell (cheap, local)."""
        ...

    @abstractmethod
    def worst_slack(self) -> float:
        """Returns the worst slack across all timing paths (authoritative).

        May trigger an implicit incremental update if cells changed since the
        last timing update.
        """
        ...

    @abstractmethod
    def update_timing(self) -> None:
        """Forces a full, non-incremental timing update."""
        ...


class PowerOracle(ABC):
    """Power analysis queries."""

    @abstractmethod
    def leakage_power(self, cells: Sequence[Any]) -> list[float]:
        """Returns the leakage power of each cell, in the order given.

        The first read after any swap triggers one full power update, so
        callers should batch all swaps before reading.
        """
        ...


class CellMutator(ABC):
    """Netlist modification."""

    @abstractmethod
    def size_cell(self, cell: Any, variant: Variant) -> None:
        """Maps a cell onto another library cell with the same footprint.

        The change is reversible by sizing the cell back to its original variant.
        """
        ...


class DesignDatabase(CellQuery, TimingOracle, PowerOracle, CellMutator):
    """A design exposing every capability the optimizer needs."""
