"""Run-script rendering.

Renders the Jinja2 templates bundled in ``lvsflow/templates`` into the LVS
work directory. The netgen run script is self-contained: executing it from
the work directory reproduces the comparison outside of lvsflow.

Rendering is strict. A slot referenced by a template but missing from the
context, or a malformed template, raises ``RenderError``; nothing is written
in that case.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from jinja2 import (Environment, PackageLoader, StrictUndefined, TemplateError,
                    UndefinedError)

from .exceptions import RenderError
from .models.lvs import RunFileOptions

logger = logging.getLogger(__name__)

RUN_SCRIPT_TEMPLATE = "run_lvs.sh.j2"
RUN_SCRIPT_NAME = "run_lvs.sh"
SETUP_FILE_NAME = "setup.tcl"

EXECUTABLE_MODE = 0o755
REGULAR_MODE = 0o644


class TemplateRenderer:
    """Renders named templates into files.

    Args:
        env: Jinja2 environment to load templates from. Defaults to the
            templates bundled with lvsflow.
    """

    def __init__(self, env: Optional[Environment] = None):
        self.env = env or Environment(
            loader=PackageLoader("lvsflow", "templates"),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def render(self, template_name: str, context: Mapping[str, Any]) -> str:
        """Renders a template to a string.

        Raises:
            RenderError: If the template is missing or malformed, or a slot
                it references is absent from ``context``.
        """
        try:
            template = self.env.get_template(template_name)
            text = template.render(**context)
        except UndefinedError as e:
            raise RenderError(f"Template '{template_name}' is missing a value: {e.message}") from e
        except TemplateError as e:
            raise RenderError(f"Cannot render template '{template_name}': {e}") from e
        if not text.strip():
            raise RenderError(f"Template '{template_name}' rendered to an empty file")
        return text

    def render_to_file(
        self,
        template_name: str,
        context: Mapping[str, Any],
        dest: Path,
        executable: bool = False,
    ) -> Path:
        """Renders a template and writes it to ``dest``.

        The text is fully rendered before anything touches the filesystem.
        """
        text = self.render(template_name, context)
        write_file(dest, text, EXECUTABLE_MODE if executable else REGULAR_MODE)
        logger.debug(f"Rendered {template_name} -> {dest}")
        return dest


def write_file(dest: Path, text: str, mode: int = REGULAR_MODE) -> Path:
    """Writes ``text`` to ``dest`` with ``mode`` applied at creation.

    The content goes to a sibling temporary file created with the final
    permissions and is then renamed over ``dest``, so other processes see
    either the old file or the complete new one.

    Raises:
        RenderError: If the file cannot be written.
    """
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", dir=dest.parent)
        try:
            # mkstemp always creates 0600; fix the mode before any content exists
            os.fchmod(fd, mode)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, dest)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        logger.error(f"Cannot write {dest}: {e}")
        raise RenderError(f"Cannot write {dest}: {e}") from e
    return dest


def create_run_file(
    opts: RunFileOptions,
    work_dir: Path,
    renderer: Optional[TemplateRenderer] = None,
) -> Path:
    """Renders the netgen run script into ``work_dir``.

    Args:
        opts: Fully populated run-file options.
        work_dir: LVS work directory.
        renderer: Renderer to use (default: bundled templates).

    Returns:
        Path of the executable run script.
    """
    renderer = renderer or TemplateRenderer()
    context = {key: str(value) for key, value in opts.model_dump().items()}
    path = renderer.render_to_file(
        RUN_SCRIPT_TEMPLATE, context, work_dir / RUN_SCRIPT_NAME, executable=True
    )
    logger.info(f"Wrote run script {path}")
    return path


def write_setup_file(content: str, work_dir: Path) -> Path:
    """Materializes the technology setup script under its conventional name."""
    path = write_file(work_dir / SETUP_FILE_NAME, content)
    logger.debug(f"Wrote setup file {path}")
    return path
