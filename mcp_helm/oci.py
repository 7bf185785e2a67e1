"""Helpers for charts stored in OCI registries.

An OCI locator such as `oci://ghcr.io/org/charts/podinfo` addresses a single
chart. There is no index; versions are the tags of the repository.
"""

from abc import ABC, abstractmethod
import asyncio
import logging
from pathlib import Path

from oras.client import OrasClient

from .config import ClientOptions
from .exceptions import RegistryException
from .repo import is_valid_version, sort_versions
from .secret import Auth, get_auth_from_docker_config, registry_host

__all__ = [
    "OCI_SCHEME",
    "is_oci",
    "oci_reference",
    "chart_name_from_oci",
    "TagLister",
    "OrasTagLister",
]

_LOGGER = logging.getLogger(__name__)

OCI_SCHEME = "oci://"


def is_oci(url: str) -> bool:
    """Return True if the locator addresses an OCI registry."""
    return url.startswith(OCI_SCHEME)


def _split_tag(ref: str) -> tuple[str, str]:
    """Split a trailing `:tag` from the last path segment of a reference."""
    head, sep, last = ref.rpartition("/")
    name, _, tag = last.partition(":")
    return f"{head}{sep}{name}", tag


def oci_reference(repo_url: str, chart_name: str = "", version: str = "") -> str:
    """Return the registry reference for a chart and optional version.

    The chart name is appended unless the locator already ends with it.
    """
    ref = repo_url.removeprefix(OCI_SCHEME)
    base, _ = _split_tag(ref)
    if chart_name:
        base = base.rstrip("/")
        if base != chart_name and not base.endswith(f"/{chart_name}"):
            base = f"{base}/{chart_name}"
    if version:
        return f"{base}:{version}"
    if chart_name:
        return base
    return ref


def chart_name_from_oci(repo_url: str) -> str:
    """Return the chart name from the last path segment of an OCI locator."""
    ref = repo_url.removeprefix(OCI_SCHEME)
    last = ref.split("/")[-1]
    return last.partition(":")[0]


class TagLister(ABC):
    """Lists the tags of an OCI repository."""

    @abstractmethod
    async def list_tags(self, ref: str) -> list[str]:
        """Return the chart versions of the reference, newest first."""


class OrasTagLister(TagLister):
    """Lists chart versions using the OCI distribution API."""

    def __init__(self, options: ClientOptions | None = None) -> None:
        """Initialize OrasTagLister."""
        self._options = options or ClientOptions()

    def _auth(self, ref: str) -> Auth | None:
        """Return the credentials to use for the registry of ref."""
        if self._options.has_basic_auth:
            return Auth(
                username=self._options.username or "",
                password=self._options.password or "",
            )
        if self._options.registry_credentials:
            return get_auth_from_docker_config(
                ref, Path(self._options.registry_credentials)
            )
        return None

    def _get_tags(self, ref: str) -> list[str]:
        """Fetch the raw tags of the reference."""
        client = OrasClient(insecure=self._options.plain_http)
        if auth := self._auth(ref):
            _LOGGER.debug("Using authentication for OCI registry %s", ref)
            client.login(
                hostname=registry_host(ref),
                username=auth.username,
                password=auth.password,
                insecure=self._options.plain_http,
            )
        return list(client.get_tags(ref))

    async def list_tags(self, ref: str) -> list[str]:
        """Return the semantic version tags of the reference, newest first.

        Tags store `+` as `_` since `+` is not allowed in OCI tags.
        """
        _LOGGER.debug("Listing tags for OCI chart %s", ref)
        try:
            tags = await asyncio.to_thread(self._get_tags, ref)
        except (ValueError, OSError) as err:
            raise RegistryException(
                f"Failed to list tags for OCI chart {ref}: {err}"
            ) from err
        versions = [tag.replace("_", "+") for tag in tags]
        return sort_versions([v for v in versions if is_valid_version(v)])
