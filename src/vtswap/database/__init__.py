"""Design database interfaces and implementations"""

from .base import CellMutator, CellQuery, DesignDatabase, PowerOracle, TimingOracle
from .synthetic import DesignSpec, Instance, LibraryCell, SyntheticDesign, TimingPath

__all__ = [
    "CellQuery",
    "TimingOracle",
    "PowerOracle",
    "CellMutator",
    "DesignDatabase",
    "DesignSpec",
    "Instance",
    "LibraryCell",
    "TimingPath",
    "SyntheticDesign",
]
