"""Library for running `helm` to download and render charts.

The `helm` binary is used for everything that touches a remote repository
or the template engine:
- `helm repo update` downloads the index of an HTTP chart repository
- `helm pull` downloads a chart archive from an HTTP repository or OCI registry
- `helm template` renders a local chart into kubernetes manifests

```python
helm = Helm(Path("/tmp/helm"), Path("/tmp/helm/cache"))
index = await helm.fetch_index(url, url)
archive = await helm.pull("oci://ghcr.io/org/charts/podinfo", "6.5.0", dest)
manifests = await helm.template(chart.path, {"replicaCount": 2})
```
"""

import datetime
import hashlib
import logging
from pathlib import Path
import tempfile
from typing import Any

import aiofiles
import yaml
from slugify import slugify

from . import command
from .config import ClientOptions
from .exceptions import HelmException
from .oci import is_oci
from .repo import IndexFetcher

__all__ = [
    "Helm",
    "RELEASE_NAME",
    "RELEASE_NAMESPACE",
]

_LOGGER = logging.getLogger(__name__)


HELM_BIN = "helm"

RELEASE_NAME = "release-name"
RELEASE_NAMESPACE = "default"

ARCHIVE_GLOB = "*.tgz"
VALUES_FILE = "values.yaml"


def repo_config_name(name: str) -> str:
    """Return a helm repository name that is safe to use for any repository key."""
    digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:8]
    slug = slugify(name, max_length=40, lowercase=True, separator="-")
    return f"{slug}-{digest}"


class RepositoryConfig:
    """Generates a helm repository configuration for a chart repository."""

    def __init__(self, name: str, url: str, options: ClientOptions) -> None:
        """Initialize RepositoryConfig."""
        self._name = name
        self._url = url
        self._options = options

    @property
    def entry(self) -> dict[str, Any]:
        """Return the repository entry with any configured credentials."""
        entry: dict[str, Any] = {
            "name": self._name,
            "url": self._url,
        }
        if self._options.has_basic_auth:
            entry["username"] = self._options.username
            entry["password"] = self._options.password
        if self._options.cert_file:
            entry["certFile"] = self._options.cert_file
        if self._options.key_file:
            entry["keyFile"] = self._options.key_file
        if self._options.ca_file:
            entry["caFile"] = self._options.ca_file
        if self._options.insecure_skip_tls_verify:
            entry["insecure_skip_tls_verify"] = True
        if self._options.pass_credentials_all:
            entry["pass_credentials_all"] = True
        return entry

    @property
    def config(self) -> dict[str, Any]:
        """Return a synthetic repository config object."""
        now = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)
        return {
            "apiVersion": "",
            "generated": now.isoformat(),
            "repositories": [self.entry],
        }


class Helm(IndexFetcher):
    """Runs helm commands against remote repositories and local charts."""

    def __init__(
        self, tmp_dir: Path, cache_dir: Path, options: ClientOptions | None = None
    ) -> None:
        """Initialize Helm."""
        self._tmp_dir = tmp_dir
        self._cache_dir = cache_dir
        self._options = options or ClientOptions()

    @property
    def _registry_args(self) -> list[str]:
        """Flags shared by every command that may talk to an OCI registry."""
        if self._options.registry_credentials:
            return ["--registry-config", self._options.registry_credentials]
        return []

    def _pull_args(self, ref: str) -> list[str]:
        """Authentication and transport flags for `helm pull`."""
        args = self._registry_args
        if self._options.has_basic_auth:
            args.extend(
                [
                    "--username",
                    self._options.username or "",
                    "--password",
                    self._options.password or "",
                ]
            )
        if self._options.cert_file and self._options.key_file:
            args.extend(
                [
                    "--cert-file",
                    self._options.cert_file,
                    "--key-file",
                    self._options.key_file,
                ]
            )
        if self._options.ca_file:
            args.extend(["--ca-file", self._options.ca_file])
        if self._options.insecure_skip_tls_verify:
            args.append("--insecure-skip-tls-verify")
        if is_oci(ref):
            if self._options.plain_http:
                args.append("--plain-http")
        elif self._options.pass_credentials_all:
            args.append("--pass-credentials")
        return args

    async def fetch_index(self, name: str, url: str) -> str:
        """Download the index of an HTTP chart repository and return its contents."""
        repo_name = repo_config_name(name)
        config_file = self._tmp_dir / f"{repo_name}-repositories.yaml"
        content = yaml.dump(
            RepositoryConfig(repo_name, url, self._options).config, sort_keys=False
        )
        async with aiofiles.open(config_file, mode="w") as repo_config:
            await repo_config.write(content)
        args = [
            HELM_BIN,
            "repo",
            "update",
            repo_name,
            "--fail-on-repo-update-fail",
            "--repository-config",
            str(config_file),
            "--repository-cache",
            str(self._cache_dir),
        ]
        await command.run(command.Command(args, exc=HelmException))
        index_file = self._cache_dir / f"{repo_name}-index.yaml"
        async with aiofiles.open(index_file, mode="r") as index:
            return await index.read()

    async def pull(self, ref: str, version: str | None, destination: Path) -> Path:
        """Download a chart archive into destination and return its path.

        The ref is either an `oci://` reference or a chart archive URL.
        """
        args = [HELM_BIN, "pull", ref, "--destination", str(destination)]
        if version:
            args.extend(["--version", version])
        args.extend(self._pull_args(ref))
        await command.run(command.Command(args, exc=HelmException))
        archives = sorted(destination.glob(ARCHIVE_GLOB))
        if len(archives) != 1:
            raise HelmException(
                f"Expected one chart archive from {ref} in {destination}, found {len(archives)}"
            )
        return archives[0]

    async def template(
        self, chart_path: Path, values: dict[str, Any] | None = None
    ) -> str:
        """Render the local chart and return the manifests.

        Override values are written to a file that only exists for the
        duration of the render.
        """
        args: list[str] = [
            HELM_BIN,
            "template",
            RELEASE_NAME,
            str(chart_path),
            "--namespace",
            RELEASE_NAMESPACE,
        ]
        if not values:
            return await command.run(command.Command(args, exc=HelmException))
        with tempfile.TemporaryDirectory(dir=self._tmp_dir) as values_dir:
            values_path = Path(values_dir) / VALUES_FILE
            async with aiofiles.open(values_path, mode="w") as values_file:
                await values_file.write(yaml.dump(values, sort_keys=False))
            args.extend(["--values", str(values_path)])
            return await command.run(command.Command(args, exc=HelmException))
