"""
Netgen JSON Parser

Parses the JSON report netgen writes when ``lvs`` is run with ``-json``.
The report is a list with one record per compared cell pair, in the order
netgen compared them; the top cell comes last. A record looks like:

    {
      "name": ["nand2_dec_auto", "nand2_n420x150_p420x150"],
      "devices": [[["sky130_fd_pr__nfet_01v8", 2], ...], [[...], ...]],
      "nets": [6, 6],
      "badnets": [...],
      "badelements": [...],
      "pins": [["A", "B", "Y"], ["A", "B", "Y"]],
      "properties": [...]
    }

Subcells that fail to match are flattened into their parent and matched
again, so only the top cell decides the result. Count differences in
subcells are reported as warnings; property errors count everywhere.
"""

import json
import logging
from itertools import zip_longest
from pathlib import Path
from typing import Any, Iterator, Optional

from ..exceptions import MalformedOutputError
from ..models.lvs import ErrorRecord, LvsOutput, WarningRecord
from .base import BaseParser

logger = logging.getLogger(__name__)


def _first_name(entry: Any) -> Optional[str]:
    """Returns the first string found in a nested netgen list."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, (list, tuple)):
        for item in entry:
            name = _first_name(item)
            if name is not None:
                return name
    return None


def _pair(record: dict, key: str) -> tuple[Any, Any]:
    value = record.get(key)
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return None, None


class NetgenJSONParser(BaseParser[LvsOutput]):
    """
    Parser for netgen's ``-json`` LVS report.

    Each mismatch becomes one ``ErrorRecord``:
    - every device class whose counts differ (top cell)
    - a net count difference (top cell)
    - every entry of "badnets" and "badelements" (top cell)
    - every pin pair that does not match (top cell)
    - every entry of "properties" (any cell)
    """

    def parse(self, path: Path) -> LvsOutput:
        """Parse a netgen JSON report file"""
        if not path.is_file():
            logger.error(f"Comparator output {path} was not written")
            raise MalformedOutputError(path, "file does not exist")
        try:
            content = self._read_file(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read comparator output {path}: {e}")
            raise MalformedOutputError(path, f"cannot read file: {e}") from e
        return self.parse_string(content, str(path))

    def parse_string(self, content: str, name: str = "unknown") -> LvsOutput:
        """Parse netgen JSON report content"""
        path = Path(name)
        if not content.strip():
            logger.error(f"Comparator output {name} is empty")
            raise MalformedOutputError(path, "file is empty")
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Comparator output {name} is not valid JSON: {e}")
            raise MalformedOutputError(path, f"invalid JSON: {e}") from e
        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            logger.error(f"Comparator output {name} is not a list of cell records")
            raise MalformedOutputError(path, "expected a list of cell records")
        if not data:
            logger.error(f"Comparator output {name} has no cell records")
            raise MalformedOutputError(path, "report contains no cell records")

        errors: list[ErrorRecord] = []
        warnings: list[WarningRecord] = []
        last = len(data) - 1
        for idx, record in enumerate(data):
            cell = self._cell_name(record)
            if idx == last:
                errors.extend(ErrorRecord(**f) for f in self._count_findings(record, cell))
                errors.extend(ErrorRecord(**f) for f in self._element_findings(record, cell))
                errors.extend(ErrorRecord(**f) for f in self._pin_findings(record, cell))
            else:
                warnings.extend(WarningRecord(**f) for f in self._count_findings(record, cell))
            errors.extend(ErrorRecord(**f) for f in self._property_findings(record, cell))

        output = LvsOutput.from_records(errors, warnings)
        logger.info(f"Parsed {len(data)} cell record(s) from {name}: {output.summary()}")
        return output

    def validate(self, data: LvsOutput) -> list[str]:
        """Returns the report's warnings as plain messages."""
        return [str(w) for w in data.warnings]

    @staticmethod
    def _cell_name(record: dict) -> Optional[str]:
        layout, schematic = _pair(record, "name")
        if layout is None:
            return _first_name(record.get("name"))
        return str(layout) if layout == schematic else f"{layout}/{schematic}"

    def _count_findings(self, record: dict, cell: Optional[str]) -> Iterator[dict]:
        devices1, devices2 = _pair(record, "devices")
        if devices1 is not None:
            counts1 = self._device_counts(devices1)
            counts2 = self._device_counts(devices2)
            for device in sorted(set(counts1) | set(counts2)):
                n1, n2 = counts1.get(device, 0), counts2.get(device, 0)
                if n1 != n2:
                    yield {
                        "kind": "device_count",
                        "cell": cell,
                        "device": device,
                        "message": f"Device count mismatch for {device}: {n1} in layout, {n2} in schematic",
                    }

        nets1, nets2 = _pair(record, "nets")
        if nets1 is not None and nets1 != nets2:
            yield {
                "kind": "net_count",
                "cell": cell,
                "message": f"Net count mismatch: {nets1} in layout, {nets2} in schematic",
            }

    @staticmethod
    def _device_counts(devices: Any) -> dict[str, int]:
        counts: dict[str, int] = {}
        for entry in devices or []:
            if isinstance(entry, (list, tuple)) and len(entry) >= 2:
                counts[str(entry[0])] = counts.get(str(entry[0]), 0) + int(entry[1])
        return counts

    def _element_findings(self, record: dict, cell: Optional[str]) -> Iterator[dict]:
        for entry in record.get("badnets") or []:
            net = _first_name(entry)
            yield {
                "kind": "bad_net",
                "cell": cell,
                "net": net,
                "message": f"Net {net or '?'} has mismatched connections",
            }
        for entry in record.get("badelements") or []:
            device = _first_name(entry)
            yield {
                "kind": "bad_element",
                "cell": cell,
                "device": device,
                "message": f"Device {device or '?'} has mismatched connections",
            }

    def _pin_findings(self, record: dict, cell: Optional[str]) -> Iterator[dict]:
        pins1, pins2 = _pair(record, "pins")
        if pins1 is None:
            return
        for p1, p2 in zip_longest(pins1 or [], pins2 or []):
            if p1 is None or p2 is None or str(p1).lower() != str(p2).lower():
                yield {
                    "kind": "pin",
                    "cell": cell,
                    "net": str(p1 if p1 is not None else p2),
                    "message": f"Pin mismatch: {p1 or '(none)'} in layout, {p2 or '(none)'} in schematic",
                }

    def _property_findings(self, record: dict, cell: Optional[str]) -> Iterator[dict]:
        for entry in record.get("properties") or []:
            device = _first_name(entry)
            yield {
                "kind": "property",
                "cell": cell,
                "device": device,
                "message": f"Property mismatch on {device or '?'}",
            }
