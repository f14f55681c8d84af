"""VtSwap Exceptions.

This module defines custom exceptions for the VtSwap framework.

Timing violations, infeasible candidates and an exhausted time budget are
normal outcomes of the optimization loops and are never raised.
"""

from pathlib import Path
from typing import Any, Optional


class VtSwapError(Exception):
    """Base class for all VtSwap errors."""


class TransitionError(VtSwapError):
    """Raised when no Vt transition is declared for a (library, step) pair.

    Callers are expected to filter out cells at the ladder extreme before
    asking for an alternative, so this signals a precondition violation.

    Attributes:
        library: The library the lookup started from.
        step: The requested ladder step (+1 or -1).
    """

    def __init__(self, library: str, step: int):
        self.library = library
        self.step = step
        super().__init__(f"No Vt transition declared for library '{library}' with step {step:+d}")


class SubstitutionError(VtSwapError):
    """Raised when a cell name does not carry the prefix a transition rewrites.

    Attributes:
        ref_name: The library cell name that was being translated.
        prefix: The prefix the transition rule expected.
    """

    def __init__(self, ref_name: str, prefix: str):
        self.ref_name = ref_name
        self.prefix = prefix
        super().__init__(f"Cell '{ref_name}' does not start with prefix '{prefix}'")


class MissingLeakageDataError(VtSwapError, KeyError):
    """Raised when the leakage saving table has no entry for a cell class.

    Attributes:
        class_key: The design-level base name of the cell.
        ref_name: The library cell name of the cell.
    """

    def __init__(self, class_key: Any, ref_name: str):
        self.class_key = class_key
        self.ref_name = ref_name
        super().__init__(f"No leakage saving recorded for ({class_key!r}, {ref_name!r})")

    def __str__(self) -> str:
        # KeyError quotes its argument otherwise
        return self.args[0]


class UnknownLibraryCellError(VtSwapError):
    """Raised when a design refers to a library cell that is not in the catalog."""

    def __init__(self, full_name: str):
        self.full_name = full_name
        super().__init__(f"Unknown library cell: {full_name}")


class FootprintMismatchError(VtSwapError):
    """Raised when a variant change would alter the physical footprint of a cell.

    Attributes:
        cell: The instance name.
        current: Footprint of the current library cell.
        target: Footprint of the requested library cell.
    """

    def __init__(self, cell: str, current: str, target: str):
        self.cell = cell
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot size '{cell}': footprint '{target}' does not match '{current}'"
        )


class ConfigurationError(VtSwapError):
    """Raised when a configuration or technology file cannot be loaded.

    Attributes:
        path: The offending file, if the error came from a file.
    """

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)
