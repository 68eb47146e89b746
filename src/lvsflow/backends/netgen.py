"""Magic + netgen LVS backend.

Pipeline:
1. extract: magic flattens the layout cell into ``<layout_cell>.spice``.
2. render: the technology setup is written to ``setup.tcl`` and the netgen
   run script to ``run_lvs.sh``.
3. execute: ``run_lvs.sh`` runs in the work directory.
4. parse: netgen's ``lvs.json`` becomes an ``LvsOutput``.

Netgen cannot read layout files, so the run script only ever references the
extracted netlist.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from ..exceptions import RenderError, SessionError, ToolExitError
from ..magic import MagicSession
from ..models.lvs import LvsInput, LvsOutput, LvsTool, RunFileOptions
from ..models.options import NetgenLvsOptions
from ..parsers.netgen_json import NetgenJSONParser
from ..process import ProcessRunner, pick_free_port
from ..render import TemplateRenderer, create_run_file, write_setup_file
from ..tech import TechProfile, TechRegistry
from .base import LvsBackend

logger = logging.getLogger(__name__)

OUTPUT_FILE_NAME = "lvs.out"
JSON_OUTPUT_NAME = "lvs.json"
RUN_LOG_NAME = "run_lvs.log"
NETLIST_SUFFIX = ".spice"

SessionFactory = Callable[..., MagicSession]


def extracted_netlist_path(work_dir: Path, layout_cell: str) -> Path:
    """Where extraction writes the flat netlist of ``layout_cell``."""
    return work_dir / f"{layout_cell}{NETLIST_SUFFIX}"


def build_run_file_options(
    lvs_input: LvsInput,
    layout_netlist: Path,
    setup_file: Path,
    netgen_bin: str = "netgen",
) -> RunFileOptions:
    """Collects the run script slots for ``lvs_input``.

    Raises:
        RenderError: If a slot cannot be filled.
    """
    try:
        return RunFileOptions(
            layout_netlist=layout_netlist,
            layout_cell=lvs_input.layout_cell,
            schematic_netlist=lvs_input.resolved_netlist_path,
            schematic_cell=lvs_input.netlist_cell,
            setup_file=setup_file,
            output_file=lvs_input.work_dir / OUTPUT_FILE_NAME,
            netgen_bin=netgen_bin,
        )
    except ValidationError as e:
        raise RenderError(f"Incomplete run script options: {e}") from e


class MagicNetgenLvs(LvsBackend):
    """LVS with magic for extraction and netgen for comparison.

    Args:
        registry: Technology profiles (default: bundled profiles).
        runner: Runs the generated script (default: ``ProcessRunner``).
        session_factory: Creates the magic session (default: ``MagicSession``).
        port_picker: Picks the magic control port when none is configured.
        renderer: Template renderer for generated files.
        parser: Parser for netgen's JSON report.
    """

    tool = LvsTool.MAGIC_NETGEN

    def __init__(
        self,
        registry: Optional[TechRegistry] = None,
        runner: Optional[ProcessRunner] = None,
        session_factory: SessionFactory = MagicSession,
        port_picker: Callable[[], int] = pick_free_port,
        renderer: Optional[TemplateRenderer] = None,
        parser: Optional[NetgenJSONParser] = None,
    ):
        super().__init__(registry)
        self.runner = runner or ProcessRunner()
        self.session_factory = session_factory
        self.port_picker = port_picker
        self.renderer = renderer or TemplateRenderer()
        self.parser = parser or NetgenJSONParser()

    def run(self, lvs_input: LvsInput) -> LvsOutput:
        profile = self._check_input(lvs_input)
        opts = NetgenLvsOptions.from_mapping(lvs_input.options)
        setup_content = profile.setup_content()
        work_dir = self._prepare_work_dir(lvs_input.work_dir)
        logger.info(
            f"LVS {lvs_input.layout_cell} vs {lvs_input.netlist_cell} "
            f"({profile.name}, {self.name}) in {work_dir}"
        )

        netlist = self.extract(lvs_input, profile, opts)
        run_file = self.render(lvs_input, netlist, setup_content, opts)
        return_code = self.execute(run_file, work_dir, opts)
        return self.parse(work_dir, return_code)

    def extract(self, lvs_input: LvsInput, profile: TechProfile, opts: NetgenLvsOptions) -> Path:
        """Flattens the layout cell into a SPICE netlist with magic.

        Raises:
            ToolLaunchError: If magic cannot be started.
            SessionError: If magic rejects a command or writes no netlist.
        """
        work_dir = lvs_input.work_dir
        netlist = extracted_netlist_path(work_dir, lvs_input.layout_cell)
        rcfile = profile.rcfile(opts.pdk_root)
        if rcfile is None:
            logger.warning(
                f"No magic rc file for {profile.name} under {opts.pdk_root}; "
                f"starting magic with -T {profile.magic_tech}"
            )

        # Drop any netlist left by an earlier run in this directory
        netlist.unlink(missing_ok=True)
        port = opts.port if opts.port is not None else self.port_picker()
        session = self.session_factory(
            work_dir=work_dir,
            magic_bin=opts.magic_bin,
            tech=profile.magic_tech,
            rcfile=rcfile,
            port=port,
            startup_timeout=opts.startup_timeout,
            command_timeout=opts.command_timeout,
        )
        logger.info(f"Extracting {lvs_input.layout_cell} from {lvs_input.resolved_layout_path}")
        with session:
            session.drc_off()
            session.set_snap("internal")
            session.load(lvs_input.resolved_layout_path, lvs_input.layout_cell)
            session.extract_all()
            session.ext2spice_lvs(netlist)

        if not netlist.is_file():
            raise SessionError("ext2spice", f"no netlist written to {netlist}")
        logger.info(f"Extracted netlist {netlist}")
        return netlist

    def render(
        self,
        lvs_input: LvsInput,
        netlist: Path,
        setup_content: str,
        opts: NetgenLvsOptions,
    ) -> Path:
        """Writes the setup file and the executable netgen run script."""
        setup_file = write_setup_file(setup_content, lvs_input.work_dir)
        run_opts = build_run_file_options(lvs_input, netlist, setup_file, opts.netgen_bin)
        return create_run_file(run_opts, lvs_input.work_dir, self.renderer)

    def execute(self, run_file: Path, work_dir: Path, opts: NetgenLvsOptions) -> int:
        """Runs the script and returns its exit status.

        Reports left in ``work_dir`` by an earlier run are removed first.
        """
        for name in (JSON_OUTPUT_NAME, OUTPUT_FILE_NAME):
            (work_dir / name).unlink(missing_ok=True)
        result = self.runner.run(
            [str(run_file)], cwd=work_dir, log_path=work_dir / RUN_LOG_NAME, timeout=opts.timeout
        )
        if not result.ok:
            logger.warning(f"Run script exited with status {result.returncode}")
        return result.returncode

    def parse(self, work_dir: Path, return_code: int = 0) -> LvsOutput:
        """Reads netgen's JSON report from ``work_dir``.

        Raises:
            ToolExitError: If the script failed and left no report behind.
            MalformedOutputError: If the report is missing or unreadable.
        """
        json_path = work_dir / JSON_OUTPUT_NAME
        if return_code != 0 and not json_path.exists():
            logger.error(f"Run script failed ({return_code}) without writing {json_path}")
            raise ToolExitError(return_code, work_dir / RUN_LOG_NAME)
        return self.parser.parse(json_path)
