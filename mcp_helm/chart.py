"""Library for reading the contents of a packaged helm chart.

A chart archive is unpacked to a local directory and loaded into a `Chart`
holding the raw files of the chart and the subcharts vendored in its `charts/`
directory. The local path is kept so the chart can be rendered with
`helm template`.

```python
chart = load_archive(Path("podinfo-6.5.0.tgz"), workdir)
for dep in get_chart_dependencies(chart):
    print(dep)
```
"""

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
import tarfile
import tempfile
from typing import Any

from mashumaro import DataClassDictMixin
import yaml

from .exceptions import InputException
from .manifest import load_metadata

__all__ = [
    "Chart",
    "ChartFile",
    "DependencyItem",
    "load_archive",
    "load_directory",
    "get_chart_dependencies",
    "get_chart_contents",
]

_LOGGER = logging.getLogger(__name__)

CHART_FILE = "Chart.yaml"
VALUES_FILE = "values.yaml"
CHARTS_DIR = "charts"
ARCHIVE_SUFFIX = ".tgz"


@dataclass(frozen=True)
class ChartFile:
    """A file within a chart, relative to the chart root."""

    name: str
    data: bytes

    @property
    def text(self) -> str:
        """Return the file contents as text."""
        return self.data.decode("utf-8", errors="replace")


@dataclass
class Chart:
    """A chart loaded from a local directory."""

    name: str
    """The chart name from `Chart.yaml`, or the directory name."""

    version: str
    """The chart version from `Chart.yaml`."""

    path: Path
    """Local directory of the unpacked chart."""

    files: list[ChartFile] = field(default_factory=list)
    """Raw files of this chart, excluding vendored subcharts."""

    dependencies: list["Chart"] = field(default_factory=list)
    """Subcharts vendored in the `charts/` directory."""

    def get_file(self, name: str) -> ChartFile | None:
        """Return the raw file with the specified name."""
        return next((f for f in self.files if f.name == name), None)

    def find_dependency(self, name: str, version: str) -> "Chart | None":
        """Return the vendored subchart with the specified name and version."""
        for subchart in self.dependencies:
            if subchart.name == name and subchart.version == version:
                return subchart
        return None

    @property
    def values(self) -> str:
        """Return the default values file contents."""
        if values_file := self.get_file(VALUES_FILE):
            return values_file.text
        return ""


@dataclass
class DependencyItem(DataClassDictMixin):
    """A dependency declared in `Chart.yaml`."""

    name: str
    version: str
    repository: str

    @classmethod
    def parse_doc(cls, doc: Any) -> "DependencyItem":
        """Parse a DependencyItem from a `dependencies` list entry."""
        if not isinstance(doc, dict):
            raise InputException(f"Invalid dependency item, expected a mapping: {doc}")
        values = {
            key: "" if doc.get(key) is None else str(doc.get(key))
            for key in ("name", "version", "repository")
        }
        if missing := [key for key, value in values.items() if not value]:
            raise InputException(
                f"Dependency item is missing required fields {', '.join(missing)}: {doc}"
            )
        return cls(**values)

    def compact_json(self) -> str:
        """Return the compact JSON serialization of the item."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


def _read_metadata(path: Path) -> dict[str, Any]:
    """Best effort read of `Chart.yaml` used for naming a loaded chart."""
    try:
        doc = load_metadata((path / CHART_FILE).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as err:
        _LOGGER.debug("Unable to read chart metadata in %s: %s", path, err)
        return {}
    return doc if isinstance(doc, dict) else {}


def _chart_root(directory: Path) -> Path:
    """Return the single top level chart directory of an unpacked archive."""
    entries = [entry for entry in directory.iterdir() if entry.is_dir()]
    if len(entries) != 1:
        raise InputException(
            f"Invalid chart archive, expected one top level directory: {directory}"
        )
    return entries[0]


def load_archive(archive: Path, workdir: Path) -> Chart:
    """Unpack a chart archive below workdir and load it."""
    target = Path(tempfile.mkdtemp(prefix="chart-", dir=workdir))
    try:
        with tarfile.open(archive, mode="r:*") as tar:
            tar.extractall(target, filter="data")
    except (OSError, tarfile.TarError) as err:
        raise InputException(f"Unable to unpack chart archive {archive}: {err}") from err
    return load_directory(_chart_root(target), workdir)


def load_directory(path: Path, workdir: Path) -> Chart:
    """Load an unpacked chart directory and its vendored subcharts."""
    metadata = _read_metadata(path)
    chart = Chart(
        name=str(metadata.get("name") or path.name),
        version=str(metadata.get("version") or ""),
        path=path,
    )
    charts_dir = path / CHARTS_DIR
    for file_path in sorted(path.rglob("*")):
        if not file_path.is_file() or file_path.is_relative_to(charts_dir):
            continue
        chart.files.append(
            ChartFile(
                name=file_path.relative_to(path).as_posix(),
                data=file_path.read_bytes(),
            )
        )
    if charts_dir.is_dir():
        for entry in sorted(charts_dir.iterdir()):
            if entry.is_dir() and (entry / CHART_FILE).exists():
                chart.dependencies.append(load_directory(entry, workdir))
            elif entry.is_file() and entry.name.endswith(ARCHIVE_SUFFIX):
                chart.dependencies.append(load_archive(entry, workdir))
    _LOGGER.debug(
        "Loaded chart %s-%s with %d files and %d subcharts",
        chart.name,
        chart.version,
        len(chart.files),
        len(chart.dependencies),
    )
    return chart


def _declared_dependencies(chart: Chart) -> list[DependencyItem]:
    """Parse the dependencies declared in the chart metadata."""
    if not (chart_file := chart.get_file(CHART_FILE)):
        raise InputException(f"`{CHART_FILE}` not found in the chart {chart.name}")
    try:
        doc = load_metadata(chart_file.data)
    except yaml.YAMLError as err:
        raise InputException(f"Failed to parse {CHART_FILE}: {err}") from err
    if doc is None:
        doc = {}
    if not isinstance(doc, dict):
        raise InputException(f"Invalid {CHART_FILE}, expected a mapping")
    if not (deps := doc.get("dependencies")):
        return []
    if not isinstance(deps, list):
        raise InputException(f"Invalid {CHART_FILE} dependencies, expected a list")
    return [DependencyItem.parse_doc(dep) for dep in deps]


def get_chart_dependencies(chart: Chart) -> list[str]:
    """Return the serialized dependencies of the chart and its subcharts.

    Each declared dependency is followed by the dependencies of the matching
    vendored subchart, if there is one.
    """
    results: list[str] = []
    for item in _declared_dependencies(chart):
        results.append(item.compact_json())
        if not (subchart := chart.find_dependency(item.name, item.version)):
            continue
        try:
            results.extend(get_chart_dependencies(subchart))
        except InputException as err:
            raise InputException(
                f"Failed to get dependencies for chart {subchart.name}: {err}"
            ) from err
    return results


def get_chart_contents(chart: Chart, recursive: bool = False) -> str:
    """Return the files of the chart concatenated with a header for each."""
    parts = []
    for chart_file in chart.files:
        parts.append(f"# file: {chart.name}/{chart_file.name}\n")
        parts.append(chart_file.text)
        parts.append("\n\n")
    if recursive:
        for subchart in chart.dependencies:
            parts.append(f"# Subchart: {subchart.name}\n")
            parts.append(get_chart_contents(subchart, recursive))
    return "".join(parts)
