"""Library for reading helm chart repository indexes.

An HTTP chart repository publishes an `index.yaml` listing every chart and
version it serves. Indexes are downloaded once per repository and kept in a
`RepositoryIndexCache` for the lifetime of the process.

```python
cache = RepositoryIndexCache(helm)
index = await cache.get_index(url, url)
print(index.versions("podinfo"))
```
"""

from abc import ABC, abstractmethod
import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import logging
from typing import Any

from mashumaro import DataClassDictMixin
from semver import Version
import yaml

from .exceptions import McpHelmException, NotFoundError, RepositoryException
from .manifest import load_metadata

__all__ = [
    "ChartVersion",
    "RepositoryIndex",
    "IndexFetcher",
    "RepositoryIndexCache",
    "sort_versions",
    "is_valid_version",
]

_LOGGER = logging.getLogger(__name__)


def _parse_version(version: str) -> Version | None:
    """Parse a semantic version, allowing a `v` prefix and a missing minor or patch."""
    try:
        return Version.parse(version.removeprefix("v"), optional_minor_and_patch=True)
    except ValueError:
        return None


def _version_key(version: str) -> tuple[int, Version | str]:
    """Sort key ranking semantic versions above anything else."""
    if (parsed := _parse_version(version)) is None:
        return (0, version)
    return (1, parsed)


def sort_versions(versions: list[str]) -> list[str]:
    """Return the versions sorted newest first by semantic version precedence.

    Prereleases rank below their release. Versions that can't be parsed are
    ranked below all parsable versions.
    """
    return sorted(versions, key=_version_key, reverse=True)


def is_valid_version(version: str) -> bool:
    """Return True if the version is a semantic version."""
    return _version_key(version)[0] == 1


@dataclass
class ChartVersion(DataClassDictMixin):
    """A single version of a chart listed in a repository index."""

    name: str
    version: str
    urls: list[str] = field(default_factory=list)

    @classmethod
    def parse_doc(cls, chart_name: str, doc: dict[str, Any]) -> "ChartVersion":
        """Parse a ChartVersion from an index entry."""
        if not isinstance(doc, dict) or doc.get("version") is None:
            raise RepositoryException(
                f"Invalid index entry for chart {chart_name} missing version: {doc}"
            )
        urls = doc.get("urls") or []
        if not isinstance(urls, list):
            raise RepositoryException(
                f"Invalid index entry for chart {chart_name} urls: {urls}"
            )
        return cls(
            name=str(doc.get("name") or chart_name),
            version=str(doc["version"]),
            urls=[str(url) for url in urls],
        )


@dataclass
class RepositoryIndex:
    """A parsed repository index with each chart's versions newest first."""

    name: str
    """The name the index is cached under."""

    url: str
    """The repository URL."""

    entries: dict[str, list[ChartVersion]] = field(default_factory=dict)
    """Chart name to versions, sorted in descending version order."""

    @classmethod
    def parse_yaml(cls, name: str, url: str, content: str) -> "RepositoryIndex":
        """Parse and sort the contents of an `index.yaml` file."""
        try:
            doc = load_metadata(content)
        except yaml.YAMLError as err:
            raise RepositoryException(f"Failed to parse index for {url}: {err}") from err
        if not isinstance(doc, dict):
            raise RepositoryException(f"Invalid index for {url}, expected a mapping")
        entries = doc.get("entries") or {}
        if not isinstance(entries, dict):
            raise RepositoryException(f"Invalid index for {url} entries: {entries}")
        index = cls(name=name, url=url)
        for chart_name, chart_versions in entries.items():
            if not isinstance(chart_versions, list):
                raise RepositoryException(
                    f"Invalid index for {url}, chart {chart_name} has no version list"
                )
            versions = [
                ChartVersion.parse_doc(str(chart_name), entry)
                for entry in chart_versions
            ]
            versions.sort(key=lambda v: _version_key(v.version), reverse=True)
            index.entries[str(chart_name)] = versions
        return index

    def chart_names(self) -> list[str]:
        """Return the sorted names of all charts in the index."""
        names = {
            versions[0].name for versions in self.entries.values() if versions
        }
        return sorted(names)

    def versions(self, chart_name: str) -> list[str]:
        """Return the versions of the chart, newest first."""
        return [v.version for v in self.entries.get(chart_name, [])]

    def latest(self, chart_name: str) -> ChartVersion:
        """Return the newest version of the chart."""
        if not (versions := self.entries.get(chart_name)):
            raise NotFoundError(f"Chart {chart_name} not found in repository {self.url}")
        return versions[0]

    def get(self, chart_name: str, version: str) -> ChartVersion:
        """Return the specified version of the chart."""
        for chart_version in self.entries.get(chart_name, []):
            if chart_version.version == version:
                return chart_version
        raise NotFoundError(
            f"Failed to find chart {chart_name} version {version} in repository {self.url}"
        )


class IndexFetcher(ABC):
    """Downloads the raw index of an HTTP chart repository."""

    @abstractmethod
    async def fetch_index(self, name: str, url: str) -> str:
        """Return the contents of the repository `index.yaml`."""


class RepositoryIndexCache:
    """Cache of repository indexes, populated on first use.

    Entries never expire. A single lock is held for the whole lookup,
    including the download, so lookups of unrelated repositories run one at a
    time.
    """

    def __init__(self, fetcher: IndexFetcher) -> None:
        """Initialize RepositoryIndexCache."""
        self._fetcher = fetcher
        self._lock = asyncio.Lock()
        self._indexes: dict[str, RepositoryIndex] = {}

    @asynccontextmanager
    async def _repository_lock(self, name: str) -> AsyncIterator[None]:
        """Run while holding the lock guarding the specified repository."""
        async with self._lock:
            yield

    async def get_index(self, name: str, url: str) -> RepositoryIndex:
        """Return the cached index for the repository, downloading it if needed."""
        async with self._repository_lock(name):
            if index := self._indexes.get(name):
                _LOGGER.debug("Using cached index for repository %s", name)
                return index
            _LOGGER.info("Downloading index for repository %s", url)
            try:
                content = await self._fetcher.fetch_index(name, url)
            except (McpHelmException, OSError) as err:
                raise RepositoryException(
                    f"Failed to download repository index for {url}: {err}"
                ) from err
            index = RepositoryIndex.parse_yaml(name, url, content)
            self._indexes[name] = index
            return index

    def __contains__(self, name: str) -> bool:
        """Return True if an index is cached for the repository."""
        return name in self._indexes
