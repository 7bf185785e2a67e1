"""Shared fixtures for building chart archives and faking helm."""

from collections.abc import Callable
import io
from pathlib import Path
import tarfile
from typing import Any

import pytest

from mcp_helm.client import HelmClient
from mcp_helm.exceptions import HelmException
from mcp_helm.helm import Helm
from mcp_helm.oci import TagLister


def build_archive(path: Path, root: str, files: dict[str, str | bytes]) -> Path:
    """Write a gzipped chart archive with files below a top level directory."""
    with tarfile.open(path, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            info = tarfile.TarInfo(name=f"{root}/{name}")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture(name="chart_archive")
def chart_archive_fixture(tmp_path: Path) -> Callable[[str, dict[str, str | bytes]], Path]:
    """Fixture returning a function that builds a chart archive in tmp_path."""

    def _build(root: str, files: dict[str, str | bytes]) -> Path:
        archive_dir = tmp_path / "archives"
        archive_dir.mkdir(exist_ok=True)
        return build_archive(archive_dir / f"{root}.tgz", root, files)

    return _build


@pytest.fixture(name="workdir")
def workdir_fixture(tmp_path: Path) -> Path:
    """Fixture for the directory charts are unpacked into."""
    path = tmp_path / "work"
    path.mkdir()
    return path


class FakeHelm(Helm):
    """Helm that serves canned indexes, archives and manifests."""

    def __init__(self, tmp_dir: Path) -> None:
        super().__init__(tmp_dir, tmp_dir)
        self.indexes: dict[str, str] = {}
        self.archives: dict[tuple[str, str | None], Path] = {}
        self.manifests: dict[str, str] = {}
        self.fetches: list[str] = []
        self.pulls: list[tuple[str, str | None]] = []
        self.renders: list[tuple[str, dict[str, Any] | None]] = []

    async def fetch_index(self, name: str, url: str) -> str:
        self.fetches.append(url)
        if url not in self.indexes:
            raise HelmException(f"Failed to fetch {url}")
        return self.indexes[url]

    async def pull(self, ref: str, version: str | None, destination: Path) -> Path:
        self.pulls.append((ref, version))
        if (ref, version) not in self.archives:
            raise HelmException(f"Failed to pull {ref}")
        return self.archives[(ref, version)]

    async def template(
        self, chart_path: Path, values: dict[str, Any] | None = None
    ) -> str:
        self.renders.append((chart_path.name, values))
        if chart_path.name not in self.manifests:
            raise HelmException(f"Failed to render {chart_path.name}")
        return self.manifests[chart_path.name]


class FakeTagLister(TagLister):
    """Tag lister returning canned tags."""

    def __init__(self) -> None:
        self.tags: dict[str, list[str]] = {}
        self.refs: list[str] = []

    async def list_tags(self, ref: str) -> list[str]:
        self.refs.append(ref)
        return self.tags.get(ref, [])


@pytest.fixture(name="helm")
def helm_fixture(tmp_path: Path) -> FakeHelm:
    """Fixture for the fake helm command."""
    return FakeHelm(tmp_path)


@pytest.fixture(name="tag_lister")
def tag_lister_fixture() -> FakeTagLister:
    """Fixture for the fake registry."""
    return FakeTagLister()


@pytest.fixture(name="client")
def client_fixture(
    tmp_path: Path, helm: FakeHelm, tag_lister: FakeTagLister
) -> HelmClient:
    """Fixture for a client backed by the fake helm and registry."""
    return HelmClient(helm, tag_lister, tmp_path)
