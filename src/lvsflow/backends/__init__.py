"""LVS backends"""

from typing import Any

from ..exceptions import ConfigurationError
from ..models.lvs import LvsInput, LvsOutput, LvsTool
from .base import LvsBackend
from .netgen import MagicNetgenLvs

BACKENDS: dict[LvsTool, type[LvsBackend]] = {
    LvsTool.MAGIC_NETGEN: MagicNetgenLvs,
}


def get_backend(tool: LvsTool, **kwargs: Any) -> LvsBackend:
    """Instantiates the backend for ``tool``.

    Raises:
        ConfigurationError: If no backend implements ``tool``.
    """
    try:
        backend_cls = BACKENDS[LvsTool(tool)]
    except (KeyError, ValueError):
        raise ConfigurationError(f"No LVS backend for tool '{tool}'") from None
    return backend_cls(**kwargs)


def run_lvs(lvs_input: LvsInput, **kwargs: Any) -> LvsOutput:
    """Runs ``lvs_input`` on the backend selected by its ``tool`` field."""
    return get_backend(lvs_input.tool, **kwargs).run(lvs_input)


__all__ = ["LvsBackend", "MagicNetgenLvs", "BACKENDS", "get_backend", "run_lvs"]
