"""In-memory design database.

A small, self-contained ``DesignDatabase`` for running the optimizer outside a
signoff tool: the CLI, the examples and the test suite all use it. The timing
model is deliberately simple. Each library cell has a fixed delay, a design is
a set of timing paths (ordered lists of instances with a required time) and
the slack of a path is its required time minus the sum of its cell delays.
Leakage is the library cell's leakage scaled by a per-instance factor, which
stands in for state-dependent leakage.

The database counts how many times timing and power are recomputed so that
callers (and tests) can check the amortization behavior of the optimizer.

Example:
    >>> design = SyntheticDesign.from_file("design.json")
    >>> design.worst_slack()
    0.12
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Collection, Sequence
from pathlib import Path
from typing import Optional

import numpy as np
from pydantic import BaseModel, Field, ValidationError, model_validator

from ..exceptions import ConfigurationError, FootprintMismatchError, UnknownLibraryCellError
from ..models.common import Variant
from .base import DesignDatabase

logger = logging.getLogger(__name__)


class LibraryCell(BaseModel):
    """A characterized library cell.

    Attributes:
        library: Library name (e.g., "CORE65LPSVT").
        name: Cell name inside the library (e.g., "HS65_LS_NAND2X7").
        vt_group: Vt group alias of the library (e.g., "SVT").
        footprint: Physical footprint; swaps must keep it unchanged.
        leakage: Leakage power of one instance with a unit leakage scale.
        delay: Propagation delay contributed to every path through the cell.
    """

    library: str
    name: str
    vt_group: str
    footprint: str = ""
    leakage: float = Field(ge=0.0)
    delay: float = Field(ge=0.0)

    @property
    def full_name(self) -> str:
        return f"{self.library}/{self.name}"


class Instance(BaseModel):
    """A cell instance of the design.

    Attributes:
        name: Unique instance name, used as the cell handle.
        base_name: Class key under which leakage savings are recorded.
            Defaults to the instance name.
        library: Library of the current variant.
        ref_name: Library cell name of the current variant.
        leakage_scale: Multiplier applied to the library cell leakage.
    """

    name: str
    base_name: str = ""
    library: str
    ref_name: str
    leakage_scale: float = Field(default=1.0, ge=0.0)

    @model_validator(mode="after")
    def _default_base_name(self) -> "Instance":
        if not self.base_name:
            self.base_name = self.name
        return self


class TimingPath(BaseModel):
    """A timing path through an ordered list of instances."""

    cells: list[str] = Field(min_length=1)
    required: float


class DesignSpec(BaseModel):
    """Serialized form of a synthetic design.

    Attributes:
        name: Design name.
        cells: Library cell catalog covering every variant reachable by swaps.
        instances: Cell instances with their current variants.
        paths: Timing paths.
        unconstrained_slack: Slack reported for cells on no timing path, and
            worst slack of a design without paths.
    """

    name: str = "design"
    cells: list[LibraryCell] = Field(default_factory=list)
    instances: list[Instance] = Field(default_factory=list)
    paths: list[TimingPath] = Field(default_factory=list)
    unconstrained_slack: float = 1.0e3

    @model_validator(mode="after")
    def _check_references(self) -> "DesignSpec":
        catalog = {c.full_name for c in self.cells}
        names = set()
        for inst in self.instances:
            if inst.name in names:
                raise ValueError(f"Duplicate instance name: {inst.name}")
            names.add(inst.name)
            full_name = f"{inst.library}/{inst.ref_name}"
            if full_name not in catalog:
                raise ValueError(f"Instance {inst.name} refers to unknown cell {full_name}")
        for i, path in enumerate(self.paths):
            missing = [c for c in path.cells if c not in names]
            if missing:
                raise ValueError(f"Path {i} refers to unknown instances: {missing}")
        return self


class SyntheticDesign(DesignDatabase):
    """A ``DesignDatabase`` backed by a ``DesignSpec``.

    Cell handles are instance names.

    Attributes:
        name: Design name.
        timing_updates: Forced full timing updates (``update_timing`` calls).
        incremental_updates: Implicit timing refreshes caused by slack reads
            after a swap.
        power_updates: Power recomputations caused by leakage reads after a swap.
        size_operations: Number of ``size_cell`` calls.
    """

    def __init__(self, spec: DesignSpec):
        self.name = spec.name
        self.unconstrained_slack = spec.unconstrained_slack
        self._catalog: dict[str, LibraryCell] = {c.full_name: c for c in spec.cells}
        self._instances: list[Instance] = [inst.model_copy() for inst in spec.instances]
        self._index: dict[str, int] = {inst.name: i for i, inst in enumerate(self._instances)}
        self._paths = [
            np.array([self._index[c] for c in p.cells], dtype=np.intp) for p in spec.paths
        ]
        self._required = np.array([p.required for p in spec.paths], dtype=float)
        self._scales = np.array([inst.leakage_scale for inst in self._instances], dtype=float)

        # Paths through each instance, for pin slack lookups
        self._cell_paths: list[list[int]] = [[] for _ in self._instances]
        for p_idx, members in enumerate(self._paths):
            for c_idx in set(members.tolist()):
                self._cell_paths[c_idx].append(p_idx)

        self.timing_updates = 0
        self.incremental_updates = 0
        self.power_updates = 0
        self.size_operations = 0

        self._refresh_timing()
        self._refresh_power()

    # -- construction -----------------------------------------------------

    @classmethod
    def from_file(cls, path: Path) -> "SyntheticDesign":
        """Loads a design from a JSON ``DesignSpec`` file.

        Raises:
            ConfigurationError: If the file cannot be read or is invalid.
        """
        path = Path(path)
        logger.info(f"Loading design: {path}")
        try:
            spec = DesignSpec.model_validate_json(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError(str(e), path) from e
        except ValidationError as e:
            raise ConfigurationError(f"invalid design file\n{e}", path) from e
        return cls(spec)

    def to_spec(self) -> DesignSpec:
        """Exports the current state, including all committed swaps."""
        return DesignSpec(
            name=self.name,
            cells=list(self._catalog.values()),
            instances=[inst.model_copy() for inst in self._instances],
            paths=[
                TimingPath(
                    cells=[self._instances[i].name for i in members.tolist()],
                    required=float(req),
                )
                for members, req in zip(self._paths, self._required)
            ],
            unconstrained_slack=self.unconstrained_slack,
        )

    # -- internal state ---------------------------------------------------

    def _lib_cell(self, inst: Instance) -> LibraryCell:
        return self._catalog[f"{inst.library}/{inst.ref_name}"]

    def _refresh_timing(self) -> None:
        delays = np.array([self._lib_cell(inst).delay for inst in self._instances], dtype=float)
        if self._paths:
            arrivals = np.array([delays[members].sum() for members in self._paths])
            self._path_slacks = self._required - arrivals
        else:
            self._path_slacks = np.empty(0)
        self._timing_dirty = False

    def _refresh_power(self) -> None:
        base = np.array([self._lib_cell(inst).leakage for inst in self._instances], dtype=float)
        self._leakages = base * self._scales
        self._power_dirty = False

    def _ensure_timing(self) -> None:
        if self._timing_dirty:
            self.incremental_updates += 1
            self._refresh_timing()

    # -- CellQuery --------------------------------------------------------

    def get_cells(self, vt_groups: Optional[Collection[str]] = None) -> list[str]:
        if vt_groups is None:
            return [inst.name for inst in self._instances]
        groups = set(vt_groups)
        return [inst.name for inst in self._instances if self._lib_cell(inst).vt_group in groups]

    def cell_count(self) -> int:
        return len(self._instances)

    def class_key(self, cell: str) -> str:
        return self._instances[self._index[cell]].base_name

    def variant(self, cell: str) -> Variant:
        inst = self._instances[self._index[cell]]
        return Variant(inst.library, inst.ref_name)

    def vt_group(self, cell: str) -> str:
        return self._lib_cell(self._instances[self._index[cell]]).vt_group

    # -- TimingOracle -----------------------------------------------------

    def pin_slack(self, cell: str) -> float:
        self._ensure_timing()
        through = self._cell_paths[self._index[cell]]
        if not through:
            return self.unconstrained_slack
        return float(self._path_slacks[through].min())

    def worst_slack(self) -> float:
        self._ensure_timing()
        if not self._path_slacks.size:
            return self.unconstrained_slack
        return float(self._path_slacks.min())

    def update_timing(self) -> None:
        self.timing_updates += 1
        self._refresh_timing()

    # -- PowerOracle ------------------------------------------------------

    def leakage_power(self, cells: Sequence[str]) -> list[float]:
        if self._power_dirty:
            self.power_updates += 1
            self._refresh_power()
        return [float(self._leakages[self._index[c]]) for c in cells]

    def total_leakage(self) -> float:
        """Returns the total design leakage (refreshing power if needed)."""
        return float(np.sum(self.leakage_power(self.get_cells())))

    # -- CellMutator ------------------------------------------------------

    def size_cell(self, cell: str, variant: Variant) -> None:
        """Maps an instance onto another library cell.

        Raises:
            UnknownLibraryCellError: If the target is not in the catalog.
            FootprintMismatchError: If the target footprint differs.
        """
        inst = self._instances[self._index[cell]]
        target = self._catalog.get(variant.full_name)
        if target is None:
            raise UnknownLibraryCellError(variant.full_name)
        current = self._lib_cell(inst)
        if target.footprint != current.footprint:
            raise FootprintMismatchError(cell, current.footprint, target.footprint)

        inst.library = variant.library
        inst.ref_name = variant.ref_name
        self.size_operations += 1
        self._timing_dirty = True
        self._power_dirty = True

    # -- reporting --------------------------------------------------------

    def vt_distribution(self) -> Counter:
        """Counts instances per Vt group."""
        return Counter(self._lib_cell(inst).vt_group for inst in self._instances)
