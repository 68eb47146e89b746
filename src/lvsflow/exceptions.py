"""LVS-Flow Exceptions.

This module defines the error taxonomy of the LVS pipeline. Every error
names the pipeline stage that raised it so callers can tell "the tools could
not be evaluated" apart from a normal, failing comparison (which is not an
error at all, but an ``LvsOutput`` with ``ok=False``).
"""

from pathlib import Path
from typing import Iterable, Optional


class LvsError(Exception):
    """Base class for all pipeline failures.

    Attributes:
        stage: Name of the pipeline stage that failed (e.g. "extract", "execute").
    """

    stage: str = "lvs"

    def __init__(self, message: str, stage: Optional[str] = None):
        if stage is not None:
            self.stage = stage
        super().__init__(message)


class ConfigurationError(LvsError):
    """Raised for invalid inputs or backend options. Never retried."""

    stage = "configure"


class UnsupportedTechnologyError(ConfigurationError):
    """Raised when a backend has no profile for the requested technology.

    Attributes:
        tech: The requested technology identifier.
        tool: The backend tool identifier.
        supported: Technologies the tool does support.
    """

    def __init__(self, tech: str, tool: str, supported: Iterable[str] = ()):
        self.tech = tech
        self.tool = tool
        self.supported = sorted(supported)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Technology '{self.tech}' is not supported by the '{self.tool}' backend"
        if self.supported:
            msg += f" (supported: {', '.join(self.supported)})"
        return msg


class ToolLaunchError(LvsError):
    """Raised when an external tool cannot be started or never becomes ready."""

    stage = "extract"


class SessionError(LvsError):
    """Raised when the layout tool reports a failure for a session command.

    Attributes:
        command: The command that failed.
        diagnostic: The tool's own diagnostic text, unmodified.
    """

    stage = "extract"

    def __init__(self, command: str, diagnostic: str):
        self.command = command
        self.diagnostic = diagnostic
        super().__init__(f"Layout tool command '{command}' failed: {diagnostic}")


class RenderError(LvsError):
    """Raised when a template is malformed or a required slot is missing."""

    stage = "render"


class ExecutionError(LvsError):
    """Raised when the run script cannot be launched."""

    stage = "execute"


class ExecutionTimeoutError(ExecutionError):
    """Raised when the run script exceeds its wall-clock timeout."""

    def __init__(self, command: str, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"'{command}' did not finish within {timeout:g}s and was killed")


class ToolExitError(ExecutionError):
    """Raised when the run script exits non-zero without producing any output.

    Attributes:
        returncode: Exit status of the run script.
        log_path: Where the script's streams were captured, if anywhere.
    """

    def __init__(self, returncode: int, log_path: Optional[Path] = None):
        self.returncode = returncode
        self.log_path = log_path
        msg = f"Run script exited with status {returncode} and wrote no comparison output"
        if log_path is not None:
            msg += f" (see {log_path})"
        super().__init__(msg)


class MalformedOutputError(LvsError):
    """Raised when the comparator output is missing, empty or unparseable.

    Attributes:
        path: Path of the offending output file.
    """

    stage = "parse"

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed comparator output {path}: {reason}")
