"""Technology profile registry.

Maps a technology identifier to the setup content a given backend needs for
it (comparator setup script, layout-tool technology and rc file). Setup
scripts ship with the package under ``lvsflow/tech/<name>/``; adding a
technology means adding a ``TechProfile`` and its files, nothing else.

The registry is immutable. Backends only ever read from it, so one registry
can be shared by any number of concurrent runs.
"""

import logging
from functools import lru_cache
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from pydantic import BaseModel

from ..exceptions import ConfigurationError, UnsupportedTechnologyError
from ..models.lvs import LvsTool

logger = logging.getLogger(__name__)


class TechProfile(BaseModel):
    """Setup data for one (technology, tool) pair.

    Attributes:
        name: Technology identifier as requested by callers (e.g. "sky130").
        tool: The backend this profile applies to.
        magic_tech: Technology name understood by the layout tool (e.g. "sky130A").
        magicrc: Layout tool rc file, relative to the PDK root.
        setup_resource: Package-relative path of the comparator setup script.
        setup_text: Inline setup script; takes precedence over ``setup_resource``.
    """

    name: str
    tool: LvsTool
    magic_tech: str
    magicrc: Optional[Path] = None
    setup_resource: Optional[str] = None
    setup_text: Optional[str] = None

    model_config = {"frozen": True}

    def setup_content(self) -> str:
        """Returns the comparator setup script for this technology.

        Raises:
            ConfigurationError: If the profile has no setup content or the
                bundled resource is missing.
        """
        if self.setup_text is not None:
            return self.setup_text
        if self.setup_resource is None:
            raise ConfigurationError(f"Technology '{self.name}' has no comparator setup")
        resource = resources.files(__name__)
        for part in self.setup_resource.split("/"):
            resource = resource / part
        try:
            return resource.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Setup file '{self.setup_resource}' for technology '{self.name}' is missing"
            ) from e

    def rcfile(self, pdk_root: Optional[Path]) -> Optional[Path]:
        """Resolves the layout tool rc file under ``pdk_root``, if it exists."""
        if pdk_root is None or self.magicrc is None:
            return None
        path = pdk_root / self.magicrc
        return path if path.is_file() else None


class TechRegistry:
    """Read-only lookup of technology profiles keyed by (tool, technology)."""

    def __init__(self, profiles: Iterable[TechProfile] = ()):
        table: dict[tuple[LvsTool, str], TechProfile] = {}
        for profile in profiles:
            table[(profile.tool, profile.name)] = profile
        self._profiles: Mapping[tuple[LvsTool, str], TechProfile] = MappingProxyType(table)

    def get(self, tech: str, tool: LvsTool) -> TechProfile:
        """Returns the profile for ``tech`` under ``tool``.

        Raises:
            UnsupportedTechnologyError: If the tool does not support the technology.
        """
        try:
            return self._profiles[(tool, tech)]
        except KeyError:
            supported = self.technologies(tool)
            logger.error(f"No '{tool.value}' profile for technology '{tech}'")
            raise UnsupportedTechnologyError(tech, tool.value, supported) from None

    def supports(self, tech: str, tool: LvsTool) -> bool:
        return (tool, tech) in self._profiles

    def technologies(self, tool: Optional[LvsTool] = None) -> list[str]:
        """Lists technology names, optionally restricted to one tool."""
        return sorted({name for t, name in self._profiles if tool is None or t == tool})

    def profiles(self) -> list[TechProfile]:
        return list(self._profiles.values())

    def with_profiles(self, *profiles: TechProfile) -> "TechRegistry":
        """Returns a new registry extended with ``profiles``."""
        return TechRegistry([*self._profiles.values(), *profiles])

    def __len__(self) -> int:
        return len(self._profiles)


BUNDLED_PROFILES = (
    TechProfile(
        name="sky130",
        tool=LvsTool.MAGIC_NETGEN,
        magic_tech="sky130A",
        magicrc=Path("sky130A/libs.tech/magic/sky130A.magicrc"),
        setup_resource="sky130/netgen_setup.tcl",
    ),
)


@lru_cache(maxsize=1)
def default_registry() -> TechRegistry:
    """Returns the registry of bundled technology profiles."""
    return TechRegistry(BUNDLED_PROFILES)


__all__ = ["TechProfile", "TechRegistry", "BUNDLED_PROFILES", "default_registry"]
