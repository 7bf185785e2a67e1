"""Client for inspecting charts in HTTP chart repositories and OCI registries.

The client resolves chart versions using the repository index (HTTP) or the
registry tags (OCI), then downloads charts to a temporary directory to read
their files, declared dependencies and rendered container images.

```python
client = HelmClient.build(Path("/tmp/mcp-helm"))
version = await client.get_latest_version("https://stefanprodan.github.io/podinfo", "podinfo")
images = await client.get_chart_images(
    "https://stefanprodan.github.io/podinfo", "podinfo", version
)
```
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
import logging
from pathlib import Path
import tempfile
from typing import Any

from .chart import Chart, get_chart_contents, get_chart_dependencies, load_archive
from .config import ClientOptions
from .exceptions import HelmException, InputException, McpHelmException, NotFoundError
from .helm import Helm
from .image import ImageReference, deduplicate_images, extract_images
from .oci import (
    OCI_SCHEME,
    OrasTagLister,
    TagLister,
    chart_name_from_oci,
    is_oci,
    oci_reference,
)
from .repo import RepositoryIndex, RepositoryIndexCache

__all__ = [
    "ChartParams",
    "HelmClient",
]

_LOGGER = logging.getLogger(__name__)

HTTP_SCHEMES = ("http://", "https://")


@dataclass(frozen=True)
class ChartParams:
    """A fully resolved chart locator."""

    repository_url: str
    chart_name: str
    chart_version: str


class HelmClient:
    """Read only access to charts in repositories and registries."""

    def __init__(self, helm: Helm, tag_lister: TagLister, tmp_dir: Path) -> None:
        """Initialize HelmClient."""
        self._helm = helm
        self._tag_lister = tag_lister
        self._tmp_dir = tmp_dir
        self._index_cache = RepositoryIndexCache(helm)

    @classmethod
    def build(
        cls, tmp_dir: Path, options: ClientOptions | None = None
    ) -> "HelmClient":
        """Create a client that stores helm state below tmp_dir."""
        options = options or ClientOptions()
        options.validate()
        helm_dir = tmp_dir / "helm"
        cache_dir = tmp_dir / "cache"
        helm_dir.mkdir(parents=True, exist_ok=True)
        cache_dir.mkdir(parents=True, exist_ok=True)
        return cls(
            Helm(helm_dir, cache_dir, options),
            OrasTagLister(options),
            tmp_dir,
        )

    async def _get_index(self, repo_url: str) -> RepositoryIndex:
        """Return the index of an HTTP repository, keyed by its URL."""
        return await self._index_cache.get_index(repo_url, repo_url)

    async def list_charts(self, repo_url: str) -> list[str]:
        """Return the names of the charts in the repository.

        An OCI locator addresses a single chart, named by its last path segment.
        """
        if is_oci(repo_url):
            if not (chart_name := chart_name_from_oci(repo_url)):
                raise InputException(
                    f"Invalid OCI reference: cannot extract chart name from {repo_url}"
                )
            return [chart_name]
        index = await self._get_index(repo_url)
        return index.chart_names()

    async def list_chart_versions(self, repo_url: str, chart_name: str) -> list[str]:
        """Return the versions of the chart, newest first."""
        if is_oci(repo_url):
            return await self._tag_lister.list_tags(oci_reference(repo_url, chart_name))
        index = await self._get_index(repo_url)
        if not (versions := index.versions(chart_name)):
            raise NotFoundError(f"Chart {chart_name} not found in repository {repo_url}")
        return versions

    async def get_latest_version(self, repo_url: str, chart_name: str) -> str:
        """Return the newest version of the chart."""
        if is_oci(repo_url):
            ref = oci_reference(repo_url, chart_name)
            if not (tags := await self._tag_lister.list_tags(ref)):
                raise NotFoundError(f"No versions found for OCI chart {ref}")
            return tags[0]
        index = await self._get_index(repo_url)
        return index.latest(chart_name).version

    async def resolve_params(
        self,
        repo_url: str,
        chart_name: str | None = None,
        chart_version: str | None = None,
        resolve_latest: bool = True,
    ) -> ChartParams:
        """Validate a chart locator, filling in the chart name and version.

        The chart name is optional for OCI locators and is then taken from the
        locator. A missing version resolves to the latest when resolve_latest
        is set.
        """
        repo_url = (repo_url or "").strip()
        if not repo_url:
            raise InputException("repository_url is required")
        chart_name = (chart_name or "").strip()
        if is_oci(repo_url):
            if not chart_name and not (chart_name := chart_name_from_oci(repo_url)):
                raise InputException(
                    "chart_name is required: could not extract chart name from OCI URL"
                )
        elif not chart_name:
            raise InputException("chart_name is required for HTTP repositories")
        chart_version = (chart_version or "").strip()
        if not chart_version and resolve_latest:
            chart_version = await self.get_latest_version(repo_url, chart_name)
        return ChartParams(
            repository_url=repo_url,
            chart_name=chart_name,
            chart_version=chart_version,
        )

    async def _chart_url(self, repo_url: str, chart_name: str, version: str) -> str:
        """Return the archive download URL of an HTTP repository chart."""
        index = await self._get_index(repo_url)
        chart_version = index.get(chart_name, version)
        if not chart_version.urls:
            raise NotFoundError(
                f"No download URLs found for chart {chart_name} version {version}"
            )
        chart_url = chart_version.urls[0]
        if not chart_url.startswith(HTTP_SCHEMES):
            chart_url = f"{repo_url.rstrip('/')}/{chart_url.lstrip('/')}"
        return chart_url

    @asynccontextmanager
    async def _load_chart(
        self, repo_url: str, chart_name: str, version: str
    ) -> AsyncIterator[Chart]:
        """Download and unpack a chart that is available while the context is held."""
        if is_oci(repo_url):
            ref = f"{OCI_SCHEME}{oci_reference(repo_url, chart_name)}"
        else:
            ref = await self._chart_url(repo_url, chart_name, version)
        with tempfile.TemporaryDirectory(dir=self._tmp_dir) as workdir:
            workdir_path = Path(workdir)
            download_dir = workdir_path / "download"
            download_dir.mkdir()
            _LOGGER.debug("Pulling chart %s version %s", ref, version)
            archive = await self._helm.pull(ref, version, download_dir)
            chart = await asyncio.to_thread(load_archive, archive, workdir_path)
            yield chart

    async def get_chart_values(
        self, repo_url: str, chart_name: str, version: str
    ) -> str:
        """Return the default `values.yaml` of the chart."""
        async with self._load_chart(repo_url, chart_name, version) as chart:
            return chart.values

    async def get_chart_contents(
        self, repo_url: str, chart_name: str, version: str, recursive: bool = False
    ) -> str:
        """Return all files of the chart, and optionally of its subcharts."""
        async with self._load_chart(repo_url, chart_name, version) as chart:
            return get_chart_contents(chart, recursive)

    async def get_chart_dependencies(
        self, repo_url: str, chart_name: str, version: str
    ) -> list[str]:
        """Return the serialized dependencies declared by the chart and its subcharts."""
        async with self._load_chart(repo_url, chart_name, version) as chart:
            try:
                return get_chart_dependencies(chart)
            except InputException as err:
                raise InputException(
                    f"Failed to get dependencies for chart {chart_name} version {version}: {err}"
                ) from err

    async def _render_images(
        self, chart: Chart, values: dict[str, Any] | None, recursive: bool
    ) -> list[ImageReference]:
        """Render the chart and return the images of its workloads."""
        manifests = await self._helm.template(chart.path, values)
        images = extract_images([manifests])
        if recursive:
            for subchart in chart.dependencies:
                try:
                    images.extend(await self._render_images(subchart, values, recursive))
                except McpHelmException as err:
                    raise HelmException(
                        f"Failed to render subchart {subchart.name}: {err}"
                    ) from err
        return images

    async def get_chart_images(
        self,
        repo_url: str,
        chart_name: str,
        version: str,
        values: dict[str, Any] | None = None,
        recursive: bool = False,
    ) -> list[ImageReference]:
        """Return the container images of the rendered chart, sorted by image."""
        async with self._load_chart(repo_url, chart_name, version) as chart:
            images = await self._render_images(chart, values, recursive)
        images = deduplicate_images(images)
        images.sort(key=lambda image: image.full_image)
        return images
