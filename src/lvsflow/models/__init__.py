"""Data models for LVS requests and reports"""

from .lvs import (ErrorRecord, LvsInput, LvsOutput, LvsRecord, LvsTool,
                  RunFileOptions, WarningRecord)
from .options import NetgenLvsOptions

__all__ = [
    "LvsTool",
    "LvsInput",
    "RunFileOptions",
    "LvsRecord",
    "ErrorRecord",
    "WarningRecord",
    "LvsOutput",
    "NetgenLvsOptions",
]
