"""Threshold-voltage ladder and Vt transition rules.

A technology offers each logic cell in several libraries that differ only in
threshold voltage. This module models the ordered ladder of Vt groups and, for
every library, the library reached by one step up or down the ladder together
with the cell name rewrite that maps a cell onto its footprint-compatible
alternative in the target library.

Example:
    >>> model = VariantModel.stcmos65()
    >>> model.resolve_alternative("CORE65LPLVT", "HS65_LL_NAND2X7")
    Variant(library='CORE65LPSVT', ref_name='HS65_LS_NAND2X7')
"""

from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from ..exceptions import ConfigurationError, SubstitutionError, TransitionError
from .common import SavingMode, Variant

STEP_UP = 1
STEP_DOWN = -1


class Transition(BaseModel):
    """A single Vt swap rule.

    Attributes:
        library_to: The library to swap to.
        prefix_from: The cell name prefix to substitute.
        prefix_to: The replacement for the cell name prefix.
    """

    library_to: str
    prefix_from: str = Field(min_length=1)
    prefix_to: str

    model_config = {"frozen": True}

    def apply(self, ref_name: str) -> str:
        """Rewrites a cell name from the source library into the target library.

        Raises:
            SubstitutionError: If ``ref_name`` does not start with ``prefix_from``.
        """
        if not ref_name.startswith(self.prefix_from):
            raise SubstitutionError(ref_name, self.prefix_from)
        return self.prefix_to + ref_name[len(self.prefix_from) :]


class VariantModel(BaseModel):
    """Ordered Vt ladder plus the transition table between its libraries.

    Attributes:
        name: Technology name, informational only.
        ladder: Vt group aliases ordered from lowest to highest threshold
            (fastest and leakiest first).
        transitions: For each library name and step (+1 up, -1 down), the
            rule that reaches the neighbouring library.
    """

    name: str = ""
    ladder: tuple[str, ...] = Field(min_length=1)
    transitions: dict[str, dict[int, Transition]] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_table(self) -> "VariantModel":
        if len(set(self.ladder)) != len(self.ladder):
            raise ValueError(f"Vt ladder has duplicate groups: {self.ladder}")
        for library, steps in self.transitions.items():
            for step, rule in steps.items():
                if step not in (STEP_UP, STEP_DOWN):
                    raise ValueError(f"{library}: step must be +1 or -1, got {step}")
                if rule.library_to not in self.transitions:
                    raise ValueError(
                        f"{library}: target library '{rule.library_to}' is not declared"
                    )
        return self

    @property
    def lowest(self) -> str:
        """The Vt group with the highest leakage and shortest delay."""
        return self.ladder[0]

    @property
    def highest(self) -> str:
        """The Vt group with the lowest leakage and longest delay."""
        return self.ladder[-1]

    def level(self, group: str) -> int:
        """Returns the ladder position of a Vt group (0 is lowest).

        Raises:
            ValueError: If the group is not part of the ladder.
        """
        try:
            return self.ladder.index(group)
        except ValueError:
            raise ValueError(f"Unknown Vt group '{group}', ladder is {self.ladder}") from None

    def swappable_groups(self, mode: SavingMode = SavingMode.FULL) -> tuple[str, ...]:
        """Vt groups whose cells may still move up the ladder.

        FULL mode returns every group below the highest one, FAST mode only
        the lowest group.
        """
        if mode is SavingMode.FAST:
            return self.ladder[:1] if len(self.ladder) > 1 else ()
        return self.ladder[:-1]

    def is_swappable(self, group: str, mode: SavingMode = SavingMode.FULL) -> bool:
        return group in self.swappable_groups(mode)

    def resolve_alternative(self, library: str, ref_name: str, step: int = STEP_UP) -> Variant:
        """Retrieves the library cell alternative with higher/lower Vt.

        The operation is assumed to be valid: the caller has already checked
        that the cell is not at the ladder extreme in the requested direction.

        Args:
            library: The library the cell currently belongs to.
            ref_name: The cell name inside ``library``.
            step: ``1`` to move up the ladder (default), ``-1`` to move down.

        Returns:
            The target (library, ref_name) pair.

        Raises:
            TransitionError: If no rule exists for ``(library, step)``.
            SubstitutionError: If ``ref_name`` lacks the rule's prefix.
        """
        try:
            rule = self.transitions[library][step]
        except KeyError:
            raise TransitionError(library, step) from None
        return Variant(rule.library_to, rule.apply(ref_name))

    @classmethod
    def from_file(cls, path: Path) -> "VariantModel":
        """Loads a technology description from a JSON file.

        Raises:
            ConfigurationError: If the file cannot be read or is invalid.
        """
        try:
            return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError(str(e), path) from e
        except ValidationError as e:
            raise ConfigurationError(f"invalid technology file\n{e}", path) from e

    @classmethod
    def stcmos65(cls) -> "VariantModel":
        """Returns the STcmos65 LP three-library ladder (LVT, SVT, HVT)."""
        return cls(
            name="STcmos65",
            ladder=("LVT", "SVT", "HVT"),
            transitions={
                "CORE65LPLVT": {
                    STEP_UP: Transition(
                        library_to="CORE65LPSVT", prefix_from="HS65_LL", prefix_to="HS65_LS"
                    ),
                },
                "CORE65LPSVT": {
                    STEP_DOWN: Transition(
                        library_to="CORE65LPLVT", prefix_from="HS65_LS", prefix_to="HS65_LL"
                    ),
                    STEP_UP: Transition(
                        library_to="CORE65LPHVT", prefix_from="HS65_LS", prefix_to="HS65_LH"
                    ),
                },
                "CORE65LPHVT": {
                    STEP_DOWN: Transition(
                        library_to="CORE65LPSVT", prefix_from="HS65_LH", prefix_to="HS65_LS"
                    ),
                },
            },
        )
