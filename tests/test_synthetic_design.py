"""Tests for the in-memory design database.

Verifies the timing and leakage model, the recomputation counters that make
the optimizer's amortization observable, and the sizing contract.
"""

import pytest
from pydantic import ValidationError

from vtswap.database.base import DesignDatabase
from vtswap.database.synthetic import DesignSpec, SyntheticDesign
from vtswap.exceptions import ConfigurationError, FootprintMismatchError, UnknownLibraryCellError
from vtswap.models.common import Variant


def test_is_a_design_database(small_design):
    assert isinstance(small_design, DesignDatabase)


def test_cell_queries(small_design):
    assert small_design.cell_count() == 5
    assert small_design.get_cells() == ["U1", "U2", "U3", "U4", "U5"]
    assert small_design.get_cells(["LVT"]) == ["U1", "U2", "U5"]
    assert small_design.get_cells(("LVT", "SVT")) == ["U1", "U2", "U3", "U5"]
    assert small_design.class_key("U3") == "U3"
    assert small_design.variant("U3") == Variant("CORE65LPSVT", "HS65_LS_NAND2X7")
    assert small_design.vt_group("U4") == "HVT"


def test_slacks(small_design):
    """Path slack is required time minus the sum of cell delays."""
    assert small_design.worst_slack() == pytest.approx(0.30)
    assert small_design.pin_slack("U1") == pytest.approx(0.30)
    assert small_design.pin_slack("U4") == pytest.approx(0.39)


def test_unconstrained_cell_slack(build_design):
    design = build_design(
        [("A", "LVT", "INVX4"), ("B", "LVT", "INVX4")],
        [(["A"], 0.5)],
        unconstrained_slack=7.0,
    )
    assert design.pin_slack("B") == 7.0
    assert build_design([("A", "LVT", "INVX4")], []).worst_slack() == 1.0e3


def test_leakage_is_scaled_per_instance(small_design):
    assert small_design.leakage_power(["U2", "U5"]) == [5.0, 10.0]
    assert small_design.total_leakage() == pytest.approx(10.0 + 5.0 + 6.0 + 1.5 + 10.0)


def test_power_recomputed_once_per_batch_of_swaps(small_design):
    assert small_design.power_updates == 0

    small_design.size_cell("U1", Variant("CORE65LPSVT", "HS65_LS_NAND2X7"))
    small_design.size_cell("U2", Variant("CORE65LPSVT", "HS65_LS_INVX4"))
    assert small_design.power_updates == 0

    assert small_design.leakage_power(["U1", "U2"]) == [6.0, 3.0]
    small_design.leakage_power(["U1"])
    assert small_design.power_updates == 1


def test_timing_updates_are_counted(small_design):
    small_design.size_cell("U1", Variant("CORE65LPHVT", "HS65_LH_NAND2X7"))

    # A read after a swap refreshes timing implicitly
    assert small_design.worst_slack() == pytest.approx(0.22)
    assert small_design.incremental_updates == 1
    assert small_design.timing_updates == 0

    small_design.update_timing()
    small_design.worst_slack()
    assert small_design.timing_updates == 1
    assert small_design.incremental_updates == 1


def test_size_cell_is_reversible(small_design):
    original = small_design.variant("U3")
    small_design.size_cell("U3", Variant("CORE65LPHVT", "HS65_LH_NAND2X7"))
    small_design.size_cell("U3", original)

    assert small_design.variant("U3") == original
    assert small_design.worst_slack() == pytest.approx(0.30)
    assert small_design.size_operations == 2


def test_size_cell_rejects_footprint_change(small_design):
    with pytest.raises(FootprintMismatchError) as exc:
        small_design.size_cell("U1", Variant("CORE65LPSVT", "HS65_LS_INVX4"))
    assert exc.value.current == "NAND2X7"
    assert small_design.variant("U1").library == "CORE65LPLVT"


def test_size_cell_rejects_unknown_cell(small_design):
    with pytest.raises(UnknownLibraryCellError, match="CORE65LPSVT/HS65_LS_XOR2X4"):
        small_design.size_cell("U1", Variant("CORE65LPSVT", "HS65_LS_XOR2X4"))


def test_spec_validation(small_spec):
    data = small_spec.model_dump()
    data["instances"][0]["ref_name"] = "HS65_LL_XOR2X4"
    with pytest.raises(ValidationError, match="unknown cell"):
        DesignSpec.model_validate(data)

    data = small_spec.model_dump()
    data["paths"][0]["cells"].append("U9")
    with pytest.raises(ValidationError, match="unknown instances"):
        DesignSpec.model_validate(data)


def test_design_is_independent_of_its_spec(small_spec):
    design = SyntheticDesign(small_spec)
    design.size_cell("U1", Variant("CORE65LPSVT", "HS65_LS_NAND2X7"))
    assert small_spec.instances[0].library == "CORE65LPLVT"


def test_to_spec_reflects_swaps(small_design):
    small_design.size_cell("U2", Variant("CORE65LPSVT", "HS65_LS_INVX4"))
    spec = small_design.to_spec()

    assert spec.instances[1].ref_name == "HS65_LS_INVX4"
    assert [p.cells for p in spec.paths] == [["U1", "U2"], ["U3", "U4", "U5"]]
    assert SyntheticDesign(spec).worst_slack() == pytest.approx(small_design.worst_slack())


def test_from_file(design_file, tmp_path):
    design = SyntheticDesign.from_file(design_file)
    assert design.name == "small"
    assert design.cell_count() == 5

    bad = tmp_path / "bad.json"
    bad.write_text('{"instances": [{"name": "X"}]}')
    with pytest.raises(ConfigurationError, match="invalid design file"):
        SyntheticDesign.from_file(bad)


def test_vt_distribution(small_design):
    assert small_design.vt_distribution() == {"LVT": 3, "SVT": 1, "HVT": 1}
