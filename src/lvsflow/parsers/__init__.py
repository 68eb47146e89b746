"""Parsers for comparator output"""

from .base import BaseParser
from .netgen_json import NetgenJSONParser

__all__ = [
    "BaseParser",
    "NetgenJSONParser",
]
