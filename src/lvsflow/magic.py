"""Magic layout tool control session.

Magic is driven through a small Tcl control server (rendered from
``templates/magic_server.tcl.j2``) that it runs on a local TCP port. Each
command is sent as one line; the server evaluates it in magic's interpreter
and answers with one line, ``OK <result>`` or ``ERR <message>``.

Every session gets its own port and its own working directory, so any
number of sessions can run side by side.
"""

import logging
import re
import socket
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional

from .exceptions import RenderError, SessionError, ToolLaunchError
from .process import pick_free_port, tail
from .render import TemplateRenderer

logger = logging.getLogger(__name__)

SERVER_TEMPLATE = "magic_server.tcl.j2"
SERVER_SCRIPT_NAME = "magic_server.tcl"
LOG_FILE_NAME = "magic.log"

GDS_SUFFIXES = {".gds", ".gds2", ".gdsii"}

_ESCAPE_RE = re.compile(r"\\(.)")


def _unescape(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: "\n" if m.group(1) == "n" else m.group(1), text)


def tcl_quote(value) -> str:
    """Quotes a value as a single Tcl word."""
    return "{" + str(value) + "}"


class MagicSession:
    """A running magic process controlled over a local socket.

    Use as a context manager; the process is shut down on exit even if a
    command failed.

    Args:
        work_dir: Directory magic runs in; logs and extraction files land here.
        magic_bin: Magic executable.
        tech: Magic technology name, used when no rc file is given.
        rcfile: Magic rc file (e.g. the PDK's ``sky130A.magicrc``).
        port: Control port. Picked with ``port_picker`` when None.
        startup_timeout: Seconds to wait for the control server.
        command_timeout: Seconds to wait for each command reply (None = forever).
        port_picker: Returns an unused local port.
        renderer: Renders the control server script.
    """

    def __init__(
        self,
        work_dir: Path,
        magic_bin: str = "magic",
        tech: Optional[str] = None,
        rcfile: Optional[Path] = None,
        port: Optional[int] = None,
        startup_timeout: float = 30.0,
        command_timeout: Optional[float] = None,
        port_picker: Callable[[], int] = pick_free_port,
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.work_dir = work_dir
        self.magic_bin = magic_bin
        self.tech = tech
        self.rcfile = rcfile
        self.port = port if port is not None else port_picker()
        self.startup_timeout = startup_timeout
        self.command_timeout = command_timeout
        self.renderer = renderer or TemplateRenderer()
        self.log_path = work_dir / LOG_FILE_NAME

        self._proc: Optional[subprocess.Popen] = None
        self._sock: Optional[socket.socket] = None
        self._stream = None

    def __enter__(self) -> "MagicSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def launch_command(self, script: Path) -> list[str]:
        """Returns the magic command line used to run ``script``."""
        cmd = [self.magic_bin, "-dnull", "-noconsole"]
        if self.rcfile is not None:
            cmd += ["-rcfile", str(self.rcfile)]
        elif self.tech is not None:
            cmd += ["-T", self.tech]
        cmd.append(str(script))
        return cmd

    def start(self) -> None:
        """Launches magic and connects to its control server.

        Raises:
            ToolLaunchError: If magic cannot be started or its server never answers.
        """
        self._launch()
        try:
            self._connect()
        except BaseException:
            self.close()
            raise
        logger.info(f"Magic session ready on port {self.port}")

    def _launch(self) -> None:
        try:
            script = self.renderer.render_to_file(
                SERVER_TEMPLATE, {"port": self.port}, self.work_dir / SERVER_SCRIPT_NAME
            )
        except RenderError as e:
            raise ToolLaunchError(f"Cannot prepare the magic control server: {e}") from e
        cmd = self.launch_command(script)
        logger.debug(f"Starting magic: {' '.join(cmd)}")
        try:
            with open(self.log_path, "ab") as log:
                self._proc = subprocess.Popen(
                    cmd,
                    cwd=self.work_dir,
                    stdin=subprocess.DEVNULL,
                    stdout=log,
                    stderr=subprocess.STDOUT,
                )
        except OSError as e:
            logger.error(f"Failed to launch magic: {e}")
            raise ToolLaunchError(f"Failed to launch '{self.magic_bin}': {e}") from e

    def _connect(self) -> None:
        deadline = time.monotonic() + self.startup_timeout
        while True:
            if self._proc is not None and self._proc.poll() is not None:
                raise ToolLaunchError(
                    f"Magic exited with status {self._proc.returncode} before accepting "
                    f"connections on port {self.port}:\n{tail(self.log_path)}"
                )
            try:
                self._sock = socket.create_connection(("127.0.0.1", self.port), timeout=1.0)
                break
            except OSError:
                if time.monotonic() >= deadline:
                    raise ToolLaunchError(
                        f"Magic control server did not come up on port {self.port} "
                        f"within {self.startup_timeout:g}s:\n{tail(self.log_path)}"
                    ) from None
                time.sleep(0.1)
        self._sock.settimeout(self.command_timeout)
        self._stream = self._sock.makefile("rw", encoding="utf-8", newline="\n")

    def command(self, cmd: str) -> str:
        """Evaluates one Tcl command in magic and returns its result.

        Raises:
            SessionError: If magic reports an error, the reply times out, or
                the connection drops.
        """
        if self._stream is None:
            raise SessionError(cmd, "session is not connected")
        logger.debug(f"magic> {cmd}")
        try:
            self._stream.write(cmd + "\n")
            self._stream.flush()
            reply = self._stream.readline()
        except socket.timeout:
            raise SessionError(cmd, f"no reply within {self.command_timeout:g}s") from None
        except OSError as e:
            raise SessionError(cmd, f"connection lost: {e}") from e
        if not reply:
            raise SessionError(cmd, f"magic closed the connection\n{tail(self.log_path)}")

        status, _, payload = reply.rstrip("\n").partition(" ")
        payload = _unescape(payload)
        if status == "OK":
            return payload
        if status == "ERR":
            logger.error(f"magic rejected '{cmd}': {payload}")
            raise SessionError(cmd, payload)
        raise SessionError(cmd, f"unexpected reply: {reply.strip()}")

    def close(self) -> None:
        """Asks magic to quit and reaps the process."""
        if self._stream is not None:
            try:
                self._stream.write("quit -noprompt\n")
                self._stream.flush()
            except OSError:
                pass  # magic already gone
            self._stream.close()
            self._stream = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        if self._proc is not None:
            try:
                self._proc.wait(timeout=5)
            except subprocess.TimeoutExpired:
                logger.warning(f"Magic (pid {self._proc.pid}) did not quit, terminating")
                self._proc.kill()
                self._proc.wait()
            self._proc = None

    # Magic commands used by extraction

    def drc_off(self) -> None:
        self.command("drc off")

    def set_snap(self, mode: str = "internal") -> None:
        self.command(f"snap {mode}")

    def load(self, layout_path: Path, cell: str) -> None:
        """Loads ``cell`` from ``layout_path`` (.mag or GDS)."""
        if layout_path.suffix.lower() in GDS_SUFFIXES:
            self.command(f"gds read {tcl_quote(layout_path)}")
            self.command(f"load {tcl_quote(cell)}")
        else:
            self.command(f"load {tcl_quote(layout_path.with_suffix(''))}")
            if layout_path.stem != cell:
                # subcell of the loaded file
                self.command(f"load {tcl_quote(cell)}")
        self.command("select top cell")

    def extract_all(self) -> None:
        self.command("extract all")

    def ext2spice_lvs(self, output: Path) -> None:
        """Writes a flat, LVS-ready SPICE netlist of the loaded cell."""
        self.command("ext2spice lvs")
        self.command("ext2spice hierarchy off")
        self.command("ext2spice subcircuit top on")
        self.command(f"ext2spice -o {tcl_quote(output)}")
