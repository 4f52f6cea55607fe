"""Key/value stores backing the ``$lookup`` and ``$integer`` script functions."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from pathlib import Path

from ctp_anonymizer.script.exceptions import ScriptFunctionError

_COMMENT_PREFIXES = ("#", "!")


class LookupTable:
    """Read-only ``keyType/key -> value`` mapping.

    Keys look like ``ptid/12345``; the key type namespaces the keys of one
    table so that a single file can serve several replacement functions.
    """

    def __init__(self, entries: Mapping[str, str] | None = None) -> None:
        self._entries = dict(entries or {})

    @classmethod
    def from_file(cls, path: Path) -> LookupTable:
        """Load a properties-style file of ``key = value`` (or ``key: value``) lines.

        Blank lines and lines starting with ``#`` or ``!`` are ignored.

        Raises:
            ScriptFunctionError: if a line has no separator.
        """
        entries: dict[str, str] = {}
        text = Path(path).read_text(encoding="utf-8")
        for number, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith(_COMMENT_PREFIXES):
                continue
            separator = _separator_index(line)
            if separator == -1:
                raise ScriptFunctionError(f"{path}:{number}: no '=' or ':' in lookup entry")
            key = line[:separator].strip()
            entries[key] = line[separator + 1 :].strip()
        return cls(entries)

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)


def _separator_index(line: str) -> int:
    indexes = [index for index in (line.find("="), line.find(":")) if index != -1]
    return min(indexes) if indexes else -1


class IntegerTable:
    """Allocates sequential integers to values, one counter per key type.

    The same ``(key_type, text)`` pair always gets the same integer for the
    life of the table. Allocation is guarded by a lock so one table can be
    shared by anonymizers running on several threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, int] = {}
        self._counters: dict[str, int] = {}

    def get_integer(self, key_type: str, text: str, width: int) -> str:
        """Integer for *text*, zero-padded to *width* digits."""
        key_type = key_type.strip()
        key = f"{key_type}/{text.strip()}"
        with self._lock:
            value = self._values.get(key)
            if value is None:
                value = self._counters.get(key_type, 0) + 1
                self._counters[key_type] = value
                self._values[key] = value
        return str(value).zfill(width) if width > 0 else str(value)

    def get(self, key: str) -> int | None:
        with self._lock:
            return self._values.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)
