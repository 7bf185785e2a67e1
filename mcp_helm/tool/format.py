"""Library for formatting command output."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Generator, Any

import sys
from typing import TextIO
import yaml
import json


PADDING = 4


def column_format_string(rows: list[list[str]]) -> str:
    """Produce a format string based on max width of columns."""
    widths = [0] * len(rows[0])
    for row in rows:
        for i, value in enumerate(row):
            widths[i] = max(widths[i], len(value))
    return "".join([f"{{:{w + PADDING}}}" for w in widths])


def format_columns(
    headers: list[str], rows: list[list[str]]
) -> Generator[str, None, None]:
    """Yield the header and rows aligned in columns."""
    data = [headers] + rows
    if not (format_string := column_format_string(data)):
        return
    for row in data:
        yield format_string.format(*row).rstrip()


class TableFormatter:
    """A formatter that prints rows as a human readable table.

    Columns map a key of each row to the header printed above it. Missing
    or empty values are printed as blank cells.
    """

    def __init__(self, columns: dict[str, str]) -> None:
        """Initialize TableFormatter."""
        self._columns = columns

    def format(self, data: Iterable[dict[str, Any]]) -> Generator[str, None, None]:
        """Format the rows, yielding nothing when there are none."""
        rows = [
            [str(row.get(key) or "") for key in self._columns] for row in data
        ]
        if not rows:
            return
        yield from format_columns(list(self._columns.values()), rows)

    def print(self, data: Iterable[dict[str, Any]], file: TextIO = sys.stdout) -> None:
        """Output the rows."""
        for line in self.format(data):
            print(line, file=file)


class StructFormatter(ABC):
    """A formatter that prints a single structured object."""

    @abstractmethod
    def dumps(self, data: Any) -> str:
        """Serialize the object, ending with a newline."""

    def format(self, data: Any) -> Generator[str, None, None]:
        """Yield the lines of the serialized object."""
        yield from self.dumps(data).rstrip("\n").split("\n")

    def print(self, data: Any, file: TextIO = sys.stdout) -> None:
        """Output the serialized object."""
        print(self.dumps(data), end="", file=file)


class YamlFormatter(StructFormatter):
    """A formatter that prints a yaml document."""

    def dumps(self, data: Any) -> str:
        return yaml.dump(data, sort_keys=False, explicit_start=True)


class JsonFormatter(StructFormatter):
    """A formatter that prints indented json."""

    def dumps(self, data: Any) -> str:
        return json.dumps(data, indent=2, sort_keys=False) + "\n"


FORMATTERS: dict[str, type[StructFormatter]] = {
    "yaml": YamlFormatter,
    "json": JsonFormatter,
}
