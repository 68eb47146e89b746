"""End-to-end LVS with the real magic and netgen binaries.

Skipped unless magic, netgen and a sky130 PDK ($PDK_ROOT) are available.
"""

import os
import shutil
from pathlib import Path

import pytest

from lvsflow.backends import run_lvs
from lvsflow.models.lvs import LvsInput

DATA_DIR = Path(__file__).parent / "data" / "clean"
LAYOUT = DATA_DIR / "nand2_dec_auto.mag"

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("magic") is None, reason="magic not installed"),
    pytest.mark.skipif(shutil.which("netgen") is None, reason="netgen not installed"),
    pytest.mark.skipif(not os.environ.get("PDK_ROOT"), reason="PDK_ROOT not set"),
]


def test_lvs_sky130_clean(tmp_path):
    output = run_lvs(
        LvsInput(
            netlist_path=DATA_DIR / "nand2.spice",
            layout_path=LAYOUT,
            netlist_cell="nand2_n420x150_p420x150",
            layout_cell="nand2_dec_auto",
            work_dir=tmp_path / "clean",
            tech="sky130",
            options={"timeout": 600},
        )
    )
    assert output.ok, output.errors
    assert output.errors == ()
    assert output.warnings == ()
