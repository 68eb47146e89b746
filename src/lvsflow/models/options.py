"""Typed backend options.

``LvsInput.options`` is a free-form mapping so that callers (and the CLI) can
pass backend-specific knobs without the request model knowing about every
backend. Each backend validates the mapping into its own model here.
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from ..exceptions import ConfigurationError


class NetgenLvsOptions(BaseModel):
    """Options understood by the magic + netgen backend."""

    magic_bin: str = Field(default="magic", description="Layout tool executable")
    netgen_bin: str = Field(default="netgen", description="Netlist comparator executable")
    pdk_root: Optional[Path] = Field(
        default_factory=lambda: Path(os.environ["PDK_ROOT"]) if os.environ.get("PDK_ROOT") else None,
        description="PDK install root (defaults to $PDK_ROOT)",
    )
    port: Optional[int] = Field(default=None, ge=1, le=65535, description="Fixed control-session port")
    startup_timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for the layout tool")
    command_timeout: Optional[float] = Field(default=None, gt=0, description="Per-command timeout in seconds")
    timeout: Optional[float] = Field(default=None, gt=0, description="Run-script timeout in seconds")

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "NetgenLvsOptions":
        """Validates a free-form options mapping.

        Raises:
            ConfigurationError: On unknown keys or invalid values.
        """
        try:
            return cls.model_validate(dict(options))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid magic_netgen options: {e}") from e
