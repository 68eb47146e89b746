"""Base parser module.

Provides the abstract base class for comparator output parsers. Each parser
turns one native result format into the canonical ``LvsOutput``.
"""

import gzip
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, TypeVar

T = TypeVar("T")


class BaseParser(ABC, Generic[T]):
    """Abstract base class for all comparator output parsers.

    Adheres to the following design principles:
    - **Modular:** One parser per native result format.
    - **Strict:** Unreadable output is an error, never an empty result.
    - **Reproducible:** Same input yields same output model.

    Attributes:
        Generic[T]: The type of the model returned by the parser (e.g., LvsOutput).
    """

    def _read_file(self, path: Path, encoding: str = "utf-8", errors: str = "strict") -> str:
        """Reads file content, automatically handling .gz compression.

        Args:
            path: Path to the file.
            encoding: Text encoding (default: utf-8).
            errors: Error handling scheme for encoding errors (default: strict).

        Returns:
            The content of the file as a string.
        """
        if path.suffix == ".gz":
            with gzip.open(path, mode="rt", encoding=encoding, errors=errors) as f:
                return f.read()
        return path.read_text(encoding=encoding, errors=errors)

    @abstractmethod
    def parse(self, path: Path) -> T:
        """Parses a result file from a given path.

        Args:
            path: Path to the comparator output file.

        Returns:
            The parsed report.
        """
        ...

    @abstractmethod
    def parse_string(self, content: str, name: str = "unknown") -> T:
        """Parses result content from a string.

        Args:
            content: The raw content string.
            name: Label for the content, used in error messages.

        Returns:
            The parsed report.
        """
        ...

    def validate(self, data: T) -> list[str]:
        """Validates the parsed report.

        Subclasses should override this to provide format-specific checks.

        Args:
            data: The parsed report.

        Returns:
            A list of warning messages (empty list if valid).
        """
        return []
