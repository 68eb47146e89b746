"""External process management.

``ProcessRunner`` is the single place lvsflow spawns a blocking child
process. Backends take a runner as a constructor argument so tests can
substitute a fake one.
"""

import logging
import os
import signal
import socket
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .exceptions import ExecutionError, ExecutionTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Outcome of a finished child process.

    Attributes:
        returncode: Exit status (negative if killed by a signal).
        duration: Wall-clock run time in seconds.
        log_path: File holding the merged stdout/stderr, if captured.
    """

    returncode: int
    duration: float
    log_path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessRunner:
    """Runs a command to completion with isolated standard streams.

    stdin is closed; stdout and stderr are merged into ``log_path`` when given
    and discarded otherwise.
    """

    def run(
        self,
        command: Sequence[str],
        cwd: Path,
        log_path: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """Runs ``command`` in ``cwd`` and waits for it to exit.

        Args:
            command: Program and arguments.
            cwd: Working directory of the child.
            log_path: Where to write the child's output.
            timeout: Wall-clock limit in seconds; None waits indefinitely.

        Returns:
            The process outcome. A non-zero exit status is not an error here.

        Raises:
            ExecutionError: If the process cannot be launched.
            ExecutionTimeoutError: If it runs past ``timeout`` (it is killed).
        """
        cmd_str = " ".join(str(c) for c in command)
        if not cwd.is_dir():
            logger.error(f"Working directory {cwd} does not exist")
            raise ExecutionError(f"Cannot run '{cmd_str}': working directory {cwd} does not exist")

        logger.info(f"Executing: {cmd_str} (cwd={cwd})")
        start = time.monotonic()
        try:
            if log_path is not None:
                with open(log_path, "wb") as log:
                    returncode = self._spawn(command, cwd, log, timeout)
            else:
                returncode = self._spawn(command, cwd, subprocess.DEVNULL, timeout)
        except subprocess.TimeoutExpired as e:
            logger.error(f"'{cmd_str}' timed out after {timeout}s")
            raise ExecutionTimeoutError(cmd_str, timeout) from e
        except OSError as e:
            logger.error(f"Failed to launch '{cmd_str}': {e}")
            raise ExecutionError(f"Failed to launch '{cmd_str}': {e}") from e

        duration = time.monotonic() - start
        logger.debug(f"'{cmd_str}' exited with {returncode} after {duration:.1f}s")
        return ProcessResult(returncode=returncode, duration=duration, log_path=log_path)

    @staticmethod
    def _spawn(command, cwd, stream, timeout) -> int:
        # The child leads a new session, so whatever it starts (netgen under
        # the run script) shares its process group and dies with it.
        proc = subprocess.Popen(
            [str(c) for c in command],
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=stream,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
        try:
            return proc.wait(timeout=timeout)
        except BaseException:
            # Timeout or cancellation
            _kill_group(proc)
            raise


def _kill_group(proc: subprocess.Popen) -> None:
    """Kills ``proc`` and every process in its group, then reaps it."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass  # already gone
    proc.wait()


def pick_free_port(host: str = "127.0.0.1") -> int:
    """Returns a TCP port on ``host`` that is currently unused."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        return s.getsockname()[1]


def tail(path: Path, lines: int = 20) -> str:
    """Returns the last ``lines`` lines of a text file ("" if unreadable)."""
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""
    return "\n".join(content.splitlines()[-lines:])
