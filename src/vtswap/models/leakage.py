"""Leakage power saving lookup table.

For a cell's class key (its design-level base name) and library cell name,
the table stores the leakage power reduction that results from swapping the
cell with its next higher-Vt alternative. Multiple design cells can be mapped
to the same library cell but, because leakage is state dependent, their
leakage differs: both keys are therefore required.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import MissingLeakageDataError


@dataclass
class LeakageSavingTable:
    """Mapping of (class_key, ref_name) to the leakage saving of one Vt step up.

    Attributes:
        savings: The raw mapping. Populated by the estimator, read-only afterwards.
        power_updates: Number of power recomputations spent building the table.
    """

    savings: dict[tuple[Any, str], float] = field(default_factory=dict)
    power_updates: int = 0

    def record(self, class_key: Any, ref_name: str, saving: float) -> None:
        self.savings[(class_key, ref_name)] = saving

    def saving(self, class_key: Any, ref_name: str) -> float:
        """Returns the leakage saving for a cell class.

        Raises:
            MissingLeakageDataError: If the pair was never estimated.
        """
        try:
            return self.savings[(class_key, ref_name)]
        except KeyError:
            raise MissingLeakageDataError(class_key, ref_name) from None

    def __contains__(self, key: object) -> bool:
        return key in self.savings

    def __len__(self) -> int:
        return len(self.savings)

    def __iter__(self) -> Iterator[tuple[Any, str]]:
        return iter(self.savings)

    def to_dict(self) -> dict:
        """Converts to a nested dictionary ``{class_key: {ref_name: saving}}``."""
        nested: dict[str, dict[str, float]] = {}
        for (class_key, ref_name), value in self.savings.items():
            nested.setdefault(str(class_key), {})[ref_name] = value
        return nested
