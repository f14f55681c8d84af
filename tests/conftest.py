"""Pytest configuration and fixtures.

Provides shared synthetic designs, design files and a CLI runner used across
multiple tests. All designs use the STcmos65 three-library ladder.
"""

import json
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from vtswap.database.synthetic import DesignSpec, Instance, LibraryCell, SyntheticDesign, TimingPath
from vtswap.models.technology import VariantModel

# library -> (vt group, name prefix, delay)
STCMOS65_LIBRARIES = {
    "CORE65LPLVT": ("LVT", "HS65_LL", 0.10),
    "CORE65LPSVT": ("SVT", "HS65_LS", 0.13),
    "CORE65LPHVT": ("HVT", "HS65_LH", 0.18),
}

# cell type -> leakage at LVT, SVT, HVT
CELL_LEAKAGE = {
    "NAND2X7": (10.0, 6.0, 3.0),
    "INVX4": (5.0, 3.0, 1.5),
}


def make_catalog(cell_types=CELL_LEAKAGE) -> list[LibraryCell]:
    """Builds LVT/SVT/HVT library cells for every cell type."""
    catalog = []
    for cell_type, leakages in cell_types.items():
        for (library, (group, prefix, delay)), leakage in zip(STCMOS65_LIBRARIES.items(), leakages):
            catalog.append(
                LibraryCell(
                    library=library,
                    name=f"{prefix}_{cell_type}",
                    vt_group=group,
                    footprint=cell_type,
                    leakage=leakage,
                    delay=delay,
                )
            )
    return catalog


def instance(name: str, group: str, cell_type: str, leakage_scale: float = 1.0) -> Instance:
    """Builds an instance of ``cell_type`` in the library of a Vt group."""
    for library, (vt_group, prefix, _) in STCMOS65_LIBRARIES.items():
        if vt_group == group:
            return Instance(
                name=name,
                library=library,
                ref_name=f"{prefix}_{cell_type}",
                leakage_scale=leakage_scale,
            )
    raise ValueError(group)


@pytest.fixture
def stcmos65():
    """The built-in STcmos65 ladder (LVT < SVT < HVT)."""
    return VariantModel.stcmos65()


@pytest.fixture
def small_spec():
    """A five-instance design meeting timing with some margin.

    - U1: NAND2X7 at LVT, U2: INVX4 at LVT, U3: NAND2X7 at SVT,
      U4: INVX4 at HVT, U5: INVX4 at LVT with twice the leakage.
    - Path U1 -> U2 (required 0.5, slack 0.30).
    - Path U3 -> U4 -> U5 (required 0.8, slack 0.39).
    """
    return DesignSpec(
        name="small",
        cells=make_catalog(),
        instances=[
            instance("U1", "LVT", "NAND2X7"),
            instance("U2", "LVT", "INVX4"),
            instance("U3", "SVT", "NAND2X7"),
            instance("U4", "HVT", "INVX4"),
            instance("U5", "LVT", "INVX4", leakage_scale=2.0),
        ],
        paths=[
            TimingPath(cells=["U1", "U2"], required=0.5),
            TimingPath(cells=["U3", "U4", "U5"], required=0.8),
        ],
    )


@pytest.fixture
def small_design(small_spec):
    """A fresh ``SyntheticDesign`` built from ``small_spec``."""
    return SyntheticDesign(small_spec)


@pytest.fixture
def chain_design():
    """Eight LVT inverters on one path with room for only some HVT swaps.

    Path delay at LVT is 0.80; every step up adds 0.03 (to SVT) then 0.05
    (to HVT), and the required time is 1.0, so at most 0.20 of extra delay
    fits.
    """
    names = [f"C{i}" for i in range(8)]
    spec = DesignSpec(
        name="chain",
        cells=make_catalog({"INVX4": (5.0, 3.0, 1.5)}),
        instances=[
            instance(name, "LVT", "INVX4", leakage_scale=1.0 + 0.1 * i)
            for i, name in enumerate(names)
        ],
        paths=[TimingPath(cells=names, required=1.0)],
    )
    return SyntheticDesign(spec)


@pytest.fixture
def design_file(small_spec):
    """Writes ``small_spec`` to a temporary JSON file.

    Yields:
        Path to the temporary file. Auto-deletes on cleanup.
    """
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
        f.write(small_spec.model_dump_json(indent=2))
        path = Path(f.name)
    yield path
    path.unlink()


@pytest.fixture
def tech_file(stcmos65, tmp_path):
    """Writes the STcmos65 technology to a JSON file."""
    path = tmp_path / "tech.json"
    path.write_text(json.dumps(stcmos65.model_dump(mode="json"), indent=2))
    return path


@pytest.fixture
def runner():
    """A Typer CLI runner."""
    return CliRunner()


@pytest.fixture
def build_design():
    """Factory for small designs.

    Instances are ``(name, vt_group, cell_type[, leakage_scale])`` tuples and
    paths are ``(cell_names, required)`` tuples. Library cell names listed in
    ``exclude`` are left out of the catalog.
    """

    def _build(instances, paths, name="test", unconstrained_slack=1.0e3, exclude=()):
        spec = DesignSpec(
            name=name,
            cells=[c for c in make_catalog() if c.name not in exclude],
            instances=[instance(*args) for args in instances],
            paths=[TimingPath(cells=cells, required=required) for cells, required in paths],
            unconstrained_slack=unconstrained_slack,
        )
        return SyntheticDesign(spec)

    return _build
