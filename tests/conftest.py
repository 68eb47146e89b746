"""Pytest configuration and fixtures.

Provides sample netgen reports, LVS requests, and fake stand-ins for the
external tools (magic session, process runner) used across multiple tests.
"""

import json
import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

from lvsflow.models.lvs import LvsInput
from lvsflow.process import ProcessResult

DATA_DIR = Path(__file__).parent / "data"

NAND2_NETLIST_CELL = "nand2_n420x150_p420x150"
NAND2_LAYOUT_CELL = "nand2_dec_auto"


@pytest.fixture
def runner():
    """Typer CLI runner."""
    return CliRunner()


@pytest.fixture
def clean_report_content():
    """Netgen JSON report for a matching nand2 layout/schematic pair."""
    return textwrap.dedent("""
    [
      {
        "name": ["nand2_dec_auto", "nand2_n420x150_p420x150"],
        "devices": [
          [["sky130_fd_pr__nfet_01v8", 2], ["sky130_fd_pr__pfet_01v8", 2]],
          [["sky130_fd_pr__nfet_01v8", 2], ["sky130_fd_pr__pfet_01v8", 2]]
        ],
        "nets": [6, 6],
        "badnets": [],
        "badelements": [],
        "pins": [["VDD", "VSS", "A", "B", "Y"], ["VDD", "VSS", "A", "B", "Y"]]
      }
    ]
    """)


@pytest.fixture
def mismatch_report_content():
    """Netgen JSON report with a failing subcell and five top-cell mismatches.

    Top cell:
    - nfet count differs (1 error)
    - net count differs (1 error)
    - one bad net and one bad element (2 errors)
    - pin B is unmatched (1 error)
    Subcell "inv": pfet count differs (1 warning, flattened by netgen).
    """
    report = [
        {
            "name": ["inv", "inv"],
            "devices": [
                [["sky130_fd_pr__nfet_01v8", 1], ["sky130_fd_pr__pfet_01v8", 2]],
                [["sky130_fd_pr__nfet_01v8", 1], ["sky130_fd_pr__pfet_01v8", 1]],
            ],
            "nets": [4, 4],
        },
        {
            "name": ["nand2_dec_auto", "nand2_n420x150_p420x150"],
            "devices": [
                [["sky130_fd_pr__nfet_01v8", 1], ["sky130_fd_pr__pfet_01v8", 2]],
                [["sky130_fd_pr__nfet_01v8", 2], ["sky130_fd_pr__pfet_01v8", 2]],
            ],
            "nets": [5, 6],
            "badnets": [
                [
                    [["x", [["sky130_fd_pr__nfet_01v8", "1", 1]]]],
                    [["x", [["sky130_fd_pr__nfet_01v8", "1", 2]]]],
                ]
            ],
            "badelements": [
                [
                    [["sky130_fd_pr__nfet_01v8:0", [["1", 1]]]],
                    [["sky130_fd_pr__nfet_01v8:XMN1", [["1", 2]]]],
                ]
            ],
            "pins": [["VDD", "VSS", "A", "(no matching pin)", "Y"], ["VDD", "VSS", "A", "B", "Y"]],
        },
    ]
    return json.dumps(report, indent=2)


@pytest.fixture
def nand2_input(tmp_path):
    """LVS request for the nand2 scenario in a fresh work directory."""
    return LvsInput(
        netlist_path=DATA_DIR / "clean" / "nand2.spice",
        layout_path=DATA_DIR / "clean" / f"{NAND2_LAYOUT_CELL}.mag",
        netlist_cell=NAND2_NETLIST_CELL,
        layout_cell=NAND2_LAYOUT_CELL,
        work_dir=tmp_path / "lvs",
        tech="sky130",
    )


class FakeSession:
    """Stands in for MagicSession; writes a dummy netlist on ext2spice."""

    def __init__(self, write_netlist=True, fail_on=None, **kwargs):
        self.kwargs = kwargs
        self.write_netlist = write_netlist
        self.fail_on = fail_on
        self.calls = []
        self.closed = False

    def __enter__(self):
        self.calls.append("start")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True

    def _record(self, name):
        if name == self.fail_on:
            from lvsflow.exceptions import SessionError

            raise SessionError(name, "Cell not found")
        self.calls.append(name)

    def drc_off(self):
        self._record("drc_off")

    def set_snap(self, mode="internal"):
        self._record(f"snap {mode}")

    def load(self, layout_path, cell):
        self._record("load")
        self.loaded = (layout_path, cell)

    def extract_all(self):
        self._record("extract_all")

    def ext2spice_lvs(self, output):
        self._record("ext2spice")
        if self.write_netlist:
            output.write_text(f".subckt {self.loaded[1]} A B Y VDD VSS\n.ends\n")


class FakeSessionFactory:
    """Creates FakeSessions and keeps them for inspection."""

    def __init__(self, **session_kwargs):
        self.session_kwargs = session_kwargs
        self.sessions = []

    def __call__(self, **kwargs):
        session = FakeSession(**self.session_kwargs, **kwargs)
        self.sessions.append(session)
        return session


class FakeRunner:
    """Stands in for ProcessRunner; "runs" netgen by writing its reports."""

    def __init__(self, report=None, returncode=0):
        self.report = report
        self.returncode = returncode
        self.calls = []

    def run(self, command, cwd, log_path=None, timeout=None):
        self.calls.append({"command": command, "cwd": cwd, "log_path": log_path, "timeout": timeout})
        if self.report is not None:
            (cwd / "lvs.out").write_text("Final result: see lvs.json\n")
            (cwd / "lvs.json").write_text(self.report)
        if log_path is not None:
            log_path.write_text("netgen output\n")
        return ProcessResult(returncode=self.returncode, duration=0.01, log_path=log_path)


@pytest.fixture
def session_factory():
    return FakeSessionFactory()


@pytest.fixture
def clean_runner(clean_report_content):
    return FakeRunner(report=clean_report_content)
