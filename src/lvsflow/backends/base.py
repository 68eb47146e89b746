"""LVS backend contract.

A backend wraps one external tool chain and exposes a single blocking
operation, ``run``. How it extracts, renders, executes and parses is its own
business; callers only ever see an ``LvsOutput`` or an ``LvsError``.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar, Optional

from ..exceptions import ConfigurationError
from ..models.lvs import LvsInput, LvsOutput, LvsTool
from ..tech import TechProfile, TechRegistry, default_registry

logger = logging.getLogger(__name__)


class LvsBackend(ABC):
    """Abstract base class for LVS backends.

    Attributes:
        tool: The tool chain this backend implements.
        registry: Technology profiles the backend looks its setup up in.
    """

    tool: ClassVar[LvsTool]

    def __init__(self, registry: Optional[TechRegistry] = None):
        self.registry = registry or default_registry()

    @property
    def name(self) -> str:
        return self.tool.value

    @abstractmethod
    def run(self, lvs_input: LvsInput) -> LvsOutput:
        """Runs LVS to completion.

        Leaves every generated and intermediate artifact in
        ``lvs_input.work_dir``, whether the run succeeds or fails.

        Args:
            lvs_input: The LVS request.

        Returns:
            The canonical report. A layout/schematic mismatch is a normal
            result with ``ok=False``.

        Raises:
            LvsError: If any stage could not complete.
        """
        ...

    def _check_input(self, lvs_input: LvsInput) -> TechProfile:
        """Validates the request against this backend before any side effects."""
        if lvs_input.tool != self.tool:
            raise ConfigurationError(
                f"Request is for tool '{lvs_input.tool.value}', backend is '{self.name}'"
            )
        return self.registry.get(lvs_input.tech, self.tool)

    @staticmethod
    def _prepare_work_dir(work_dir: Path) -> Path:
        try:
            work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create work directory {work_dir}: {e}")
            raise ConfigurationError(f"Cannot create work directory {work_dir}: {e}") from e
        if not work_dir.is_dir():
            raise ConfigurationError(f"Work directory {work_dir} is not a directory")
        return work_dir

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(tool={self.name}, techs={self.registry.technologies(self.tool)})>"
