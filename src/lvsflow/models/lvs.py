"""Request and report models for LVS runs.

This module defines the backend-agnostic data model shared by every LVS
backend: the immutable request (``LvsInput``), the parameters consumed by the
run-script template (``RunFileOptions``), and the canonical report
(``LvsOutput``) that each backend's native result format is translated into.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class LvsTool(str, Enum):
    """Enumeration of supported LVS tool chains."""

    MAGIC_NETGEN = "magic_netgen"  # magic extraction + netgen comparison


class LvsInput(BaseModel):
    """An LVS request.

    Relative netlist/layout paths are resolved against ``work_dir`` so they
    keep their meaning when a tool runs with the work directory as its cwd.

    Attributes:
        netlist_path: Schematic netlist (e.g. SPICE).
        layout_path: Physical layout (e.g. .mag or .gds).
        netlist_cell: Top cell of the schematic netlist.
        layout_cell: Top cell of the layout.
        work_dir: Directory holding every generated and intermediate artifact.
        tech: Technology identifier (e.g. "sky130").
        tool: Backend tool chain to run.
        options: Free-form, backend-specific options.
    """

    netlist_path: Path
    layout_path: Path
    netlist_cell: str = Field(..., min_length=1)
    layout_cell: str = Field(..., min_length=1)
    work_dir: Path
    tech: str = Field(..., min_length=1)
    tool: LvsTool = LvsTool.MAGIC_NETGEN
    options: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator("work_dir")
    @classmethod
    def _absolute_work_dir(cls, v: Path) -> Path:
        return v.expanduser().absolute()

    def _resolve(self, path: Path) -> Path:
        path = path.expanduser()
        return path if path.is_absolute() else self.work_dir / path

    @property
    def resolved_netlist_path(self) -> Path:
        """Absolute path of the schematic netlist."""
        return self._resolve(self.netlist_path)

    @property
    def resolved_layout_path(self) -> Path:
        """Absolute path of the layout."""
        return self._resolve(self.layout_path)


class RunFileOptions(BaseModel):
    """Slots filled into the run-script template.

    Every slot is required; there are no defaults for paths or cell names.
    """

    layout_netlist: Path = Field(..., description="Extracted (intermediate) netlist")
    layout_cell: str = Field(..., min_length=1)
    schematic_netlist: Path = Field(..., description="Reference schematic netlist")
    schematic_cell: str = Field(..., min_length=1)
    setup_file: Path = Field(..., description="Comparator setup script")
    output_file: Path = Field(..., description="Comparator report path")
    netgen_bin: str = "netgen"

    model_config = {"frozen": True}


class LvsRecord(BaseModel):
    """A single finding reported by a comparator.

    Attributes:
        message: Human-readable description.
        kind: Category (device_count, net_count, bad_net, bad_element, pin, property, ...).
        cell: Cell the finding belongs to, if known.
        net: Net the finding refers to, if any.
        device: Device or device class the finding refers to, if any.
    """

    message: str
    kind: str = "unmatched"
    cell: Optional[str] = None
    net: Optional[str] = None
    device: Optional[str] = None

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"[{self.cell}] {self.message}" if self.cell else self.message


class ErrorRecord(LvsRecord):
    """A mismatch that makes the comparison fail."""


class WarningRecord(LvsRecord):
    """A finding that does not fail the comparison on its own."""


class LvsOutput(BaseModel):
    """Canonical, backend-agnostic LVS report.

    Attributes:
        ok: True if layout and schematic match.
        errors: Mismatches, in the order the comparator reported them.
        warnings: Non-fatal findings.
    """

    ok: bool
    errors: tuple[ErrorRecord, ...] = ()
    warnings: tuple[WarningRecord, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _errors_force_failure(self) -> "LvsOutput":
        if self.ok and self.errors:
            raise ValueError("An LVS report with errors cannot be ok")
        return self

    @classmethod
    def from_records(
        cls,
        errors: Iterable[ErrorRecord] = (),
        warnings: Iterable[WarningRecord] = (),
    ) -> "LvsOutput":
        """Builds a report whose pass/fail state follows from the error list."""
        errors = tuple(errors)
        return cls(ok=not errors, errors=errors, warnings=tuple(warnings))

    def summary(self) -> str:
        """Returns a one-line summary of the report."""
        status = "PASS" if self.ok else "FAIL"
        return f"LVS {status}: {len(self.errors)} error(s), {len(self.warnings)} warning(s)"
