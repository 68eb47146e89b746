"""LVS-Flow CLI - Command Line Interface.

This module provides the command-line interface for LVS-Flow, allowing users
to run layout-versus-schematic checks, inspect existing comparator reports and
list the technologies each backend supports.

The CLI is built using Typer and uses Rich for formatted output.

Typical usage example:

  $ lvsflow run nand2.spice nand2_dec_auto.mag \\
        --netlist-cell nand2_n420x150_p420x150 --layout-cell nand2_dec_auto \\
        --tech sky130 --work-dir build/lvs
  $ lvsflow report build/lvs/lvs.json
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .backends import get_backend
from .exceptions import LvsError
from .log_utils import setup_logging
from .models.lvs import LvsInput, LvsOutput, LvsTool
from .parsers.netgen_json import NetgenJSONParser
from .tech import default_registry

app = typer.Typer(
    name="lvsflow",
    help="LVS-Flow: Layout-Versus-Schematic orchestration",
    no_args_is_help=True,
)
console = Console()

EXIT_MISMATCH = 1
EXIT_ERROR = 2


@app.callback(invoke_without_command=False)
def main(
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress debug logs (show warnings/errors only)"
    ),
):
    """LVS-Flow: Layout-Versus-Schematic orchestration."""
    setup_logging(quiet=quiet)


def parse_options(pairs: Optional[list[str]]) -> dict[str, str]:
    """Parses repeated ``key=value`` options into a mapping.

    Raises:
        typer.BadParameter: If an item has no '=' or an empty key.
    """
    options: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got '{pair}'", param_hint="--option")
        options[key.strip()] = value.strip()
    return options


def print_report(output: LvsOutput, title: str) -> None:
    """Displays a report as a summary panel plus a findings table."""
    status = "[bold green]PASS[/]" if output.ok else "[bold red]FAIL[/]"
    console.print(
        Panel.fit(
            f"[bold]Result:[/] {status}\n"
            f"[bold]Errors:[/] {len(output.errors)}\n"
            f"[bold]Warnings:[/] {len(output.warnings)}",
            title=title,
        )
    )

    if output.errors or output.warnings:
        table = Table(title="Findings")
        table.add_column("Severity")
        table.add_column("Kind")
        table.add_column("Cell")
        table.add_column("Message")
        for record in output.errors:
            table.add_row("[red]error[/red]", record.kind, escape(record.cell or ""), escape(record.message))
        for record in output.warnings:
            table.add_row("[yellow]warning[/yellow]", record.kind, escape(record.cell or ""), escape(record.message))
        console.print(table)


@app.command()
def run(
    netlist: Path = typer.Argument(..., help="Schematic netlist (SPICE)"),
    layout: Path = typer.Argument(..., help="Layout file (.mag or .gds)"),
    netlist_cell: str = typer.Option(..., "--netlist-cell", "-n", help="Schematic top cell"),
    layout_cell: str = typer.Option(..., "--layout-cell", "-l", help="Layout top cell"),
    tech: str = typer.Option(..., "--tech", "-t", help="Technology, e.g. sky130"),
    work_dir: Path = typer.Option(..., "--work-dir", "-w", help="Directory for LVS artifacts"),
    tool: LvsTool = typer.Option(LvsTool.MAGIC_NETGEN, "--tool", help="Backend tool chain"),
    option: Optional[list[str]] = typer.Option(
        None, "--option", "-O", help="Backend option as key=value (repeatable)"
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report as JSON"),
):
    """Runs LVS on a layout against a schematic netlist.

    Exits with 0 if the layout matches, 1 on a mismatch and 2 if the check
    could not be carried out.
    """
    logger = logging.getLogger("lvsflow.cli")
    options = parse_options(option)

    try:
        lvs_input = LvsInput(
            netlist_path=netlist.absolute(),
            layout_path=layout.absolute(),
            netlist_cell=netlist_cell,
            layout_cell=layout_cell,
            work_dir=work_dir,
            tech=tech,
            tool=tool,
            options=options,
        )
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid request: {escape(str(e))}")
        raise typer.Exit(EXIT_ERROR)

    logger.info(f"Starting LVS in {lvs_input.work_dir}")
    try:
        result = get_backend(lvs_input.tool).run(lvs_input)
    except LvsError as e:
        console.print(f"[red]Error ({e.stage}):[/red] {escape(str(e))}")
        console.print(f"Artifacts kept in: {lvs_input.work_dir}")
        raise typer.Exit(EXIT_ERROR)

    print_report(result, f"LVS {layout_cell} vs {netlist_cell}")

    if output:
        output.write_text(json.dumps(result.model_dump(), indent=2))
        console.print(f"[green]Saved to:[/green] {output}")

    if not result.ok:
        raise typer.Exit(EXIT_MISMATCH)


@app.command()
def report(
    file: Path = typer.Argument(..., help="Netgen JSON report (lvs.json)"),
):
    """Parses an existing netgen JSON report and displays it."""
    if not file.exists():
        console.print(f"[red]Error:[/red] File not found: {file}")
        raise typer.Exit(EXIT_ERROR)

    parser = NetgenJSONParser()
    try:
        result = parser.parse(file)
    except LvsError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_ERROR)

    print_report(result, file.name)
    if not result.ok:
        raise typer.Exit(EXIT_MISMATCH)


@app.command()
def techs(
    tool: Optional[LvsTool] = typer.Option(None, "--tool", help="Only list this backend"),
):
    """Lists the technologies each backend supports."""
    registry = default_registry()

    table = Table(title="Technologies")
    table.add_column("Technology")
    table.add_column("Backend")
    table.add_column("Magic tech")
    for profile in sorted(registry.profiles(), key=lambda p: (p.name, p.tool.value)):
        if tool is not None and profile.tool != tool:
            continue
        table.add_row(profile.name, profile.tool.value, profile.magic_tech)
    console.print(table)


if __name__ == "__main__":
    app()
