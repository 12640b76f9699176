"""Ephemeris line builder: append column texts, then write the finished line."""

from __future__ import annotations

from typing import TextIO


class Record:
    """Growable line buffer: fields are appended with a separator, then written as one line.

    Unlike a fixed-size buffer, a record never truncates; ephemeris lines with
    many optional columns grow as needed.
    """

    def __init__(self, sep: str = '') -> None:
        """Create an empty record; sep is inserted between appended fields."""
        self._parts: list[str] = []
        self._sep = sep

    def init(self) -> None:
        """Clear the record."""
        self._parts = []

    def append(self, string: str) -> Record:
        """Append a field, preceded by the separator unless it is the first."""
        if self._parts and self._sep:
            self._parts.append(self._sep)
        self._parts.append(string)
        return self

    def __len__(self) -> int:
        return sum(len(p) for p in self._parts)

    def __bool__(self) -> bool:
        return bool(self._parts)

    def write(self, stream: TextIO) -> None:
        """Write the current record as a line (trailing blanks removed) and re-initialize."""
        if self._parts:
            stream.write(self.get_line() + '\n')
        self.init()

    def get_line(self) -> str:
        """Return the current record without writing or re-initializing."""
        return ''.join(self._parts).rstrip()
