"""Optimizer configuration.

The defaults result from tests on the contest benchmark circuits (c1908,
c5315) the recipe was tuned for.
"""

from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigurationError


class OptimizerConfig(BaseModel):
    """Tunable parameters of the multi-Vt recipe.

    Attributes:
        large_design_cells: Designs with more cells than this are "large".
        tight_slack_margin: Initial worst slack below which timing is "tight".
            A large design with tight timing is optimized with the fast strategy.
        fast_local_swap_count: Cells swapped wholesale per local pass in the
            fast strategy (the select fraction is this count over the cell count).
        accurate_select_fraction: Share of candidates swapped wholesale per
            local pass in the accurate strategy.
        accurate_derate_fraction: Share of a failed local batch re-attempted
            in the accurate strategy.
        fast_derate_fraction: Same, in the fast strategy (0: no retry).
        global_batch_size: Cells swapped at a time in the first attempt of
            every global iteration.
        max_duration: Wall-clock budget of the whole run, in seconds.
        ema_alpha: Smoothing factor of the iteration duration average.
    """

    large_design_cells: int = Field(default=300, ge=0)
    tight_slack_margin: float = 0.001
    fast_local_swap_count: int = Field(default=68, ge=1)
    accurate_select_fraction: float = Field(default=1.0, gt=0.0, le=1.0)
    accurate_derate_fraction: float = Field(default=0.95, ge=0.0, lt=1.0)
    fast_derate_fraction: float = Field(default=0.0, ge=0.0, lt=1.0)
    global_batch_size: int = Field(default=4, ge=1)
    max_duration: float = Field(default=180.0, gt=0.0)
    ema_alpha: float = Field(default=0.3, gt=0.0, le=1.0)

    model_config = {"extra": "forbid"}

    @classmethod
    def from_file(cls, path: Path) -> "OptimizerConfig":
        """Loads a configuration from a JSON file.

        Keys that are absent keep their default value.

        Raises:
            ConfigurationError: If the file cannot be read or is invalid.
        """
        path = Path(path)
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError(str(e), path) from e
        except ValidationError as e:
            raise ConfigurationError(f"invalid configuration\n{e}", path) from e
