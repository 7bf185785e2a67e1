"""Helper functions for working with container images.

Images are found by rendering a chart and walking the pod specs of the
workload objects in the output.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
import logging
from typing import Any

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig

from .manifest import Tree, get_path, parse_documents, resource_label

__all__ = [
    "ImageReference",
    "parse_image",
    "extract_images",
    "deduplicate_images",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_REGISTRY = "docker.io"
DEFAULT_TAG = "latest"
OFFICIAL_NAMESPACE = "library"
INIT_SUFFIX = " (init)"
SOURCE_SEPARATOR = ", "

# Path from the object root to the pod spec for object types with containers.
POD_SPEC_PATHS: dict[str, list[str]] = {
    "Deployment": ["spec", "template", "spec"],
    "StatefulSet": ["spec", "template", "spec"],
    "DaemonSet": ["spec", "template", "spec"],
    "ReplicaSet": ["spec", "template", "spec"],
    "Job": ["spec", "template", "spec"],
    "CronJob": ["spec", "jobTemplate", "spec", "template", "spec"],
    "Pod": ["spec"],
}

# Container lists within a pod spec and the suffix applied to their source.
CONTAINER_KEYS = {
    "containers": "",
    "initContainers": INIT_SUFFIX,
}


@dataclass
class ImageReference(DataClassDictMixin):
    """A container image referenced by a chart."""

    registry: str = ""
    """The registry host, e.g. `docker.io` or `registry.example.com:5000`."""

    repository: str = ""
    """The repository path within the registry, e.g. `library/nginx`."""

    tag: str = DEFAULT_TAG
    """The image tag, empty when only a digest was given."""

    digest: str | None = None
    """The image digest, e.g. `sha256:abc123`."""

    full_image: str = field(default="", metadata=field_options(alias="fullImage"))
    """The image string exactly as it appeared in the manifest."""

    source: str = ""
    """Objects the image was found in, e.g. `Deployment/foo (init)`."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


def parse_image(image: str) -> ImageReference:
    """Parse an image string into its registry, repository, tag and digest.

    This never fails: missing parts fall back to the Docker Hub defaults. The
    first path segment is treated as a registry only when it looks like a
    host (contains a `.` or `:`), so a dotless registry host such as
    `myregistry/app` is read as a Docker Hub user repository.
    """
    ref = ImageReference(full_image=image)
    if not image:
        return ref

    remainder = image
    if (idx := remainder.rfind("@")) != -1:
        ref.digest = remainder[idx + 1 :]
        ref.tag = ""
        remainder = remainder[:idx]

    if (idx := remainder.rfind(":")) != -1:
        suffix = remainder[idx + 1 :]
        # A `/` after the colon means it separated a registry port
        if "/" not in suffix:
            ref.tag = suffix
            remainder = remainder[:idx]

    parts = remainder.split("/")
    if len(parts) == 1:
        ref.registry = DEFAULT_REGISTRY
        ref.repository = f"{OFFICIAL_NAMESPACE}/{parts[0]}"
    elif len(parts) == 2:
        if "." in parts[0] or ":" in parts[0]:
            ref.registry, ref.repository = parts
        else:
            ref.registry = DEFAULT_REGISTRY
            ref.repository = remainder
    else:
        ref.registry = parts[0]
        ref.repository = "/".join(parts[1:])
    return ref


def _container_images(pod_spec: Tree, source: str) -> list[ImageReference]:
    """Return the images of the containers and init containers of a pod spec."""
    images = []
    for key, suffix in CONTAINER_KEYS.items():
        containers = pod_spec.get(key)
        if not isinstance(containers, list):
            continue
        for container in containers:
            if not isinstance(container, dict):
                continue
            image = container.get("image")
            if not isinstance(image, str) or not image:
                continue
            ref = parse_image(image)
            ref.source = f"{source}{suffix}"
            images.append(ref)
    return images


def _document_images(doc: Tree) -> list[ImageReference]:
    """Return the images referenced by a single kubernetes object."""
    kind = doc.get("kind")
    if not isinstance(kind, str) or not (path := POD_SPEC_PATHS.get(kind)):
        return []
    if (pod_spec := get_path(doc, path)) is None:
        _LOGGER.debug("No pod spec found for %s", resource_label(doc))
        return []
    return _container_images(pod_spec, resource_label(doc))


def extract_images(manifests: Iterable[str]) -> list[ImageReference]:
    """Extract the container images from rendered YAML manifests.

    Each manifest may hold multiple documents. Malformed documents and object
    kinds without pod specs contribute no images.
    """
    images: list[ImageReference] = []
    for content in manifests:
        for doc in parse_documents(content):
            images.extend(_document_images(doc))
    return images


def deduplicate_images(images: Iterable[ImageReference]) -> list[ImageReference]:
    """Merge images with the same `full_image`, combining their sources.

    The result holds copies of the input references and is in no particular
    order.
    """
    seen: dict[str, ImageReference] = {}
    for image in images:
        if not (existing := seen.get(image.full_image)):
            seen[image.full_image] = replace(image)
            continue
        if image.source not in existing.source:
            existing.source = f"{existing.source}{SOURCE_SEPARATOR}{image.source}"
    return list(seen.values())


def image_dicts(images: Iterable[ImageReference]) -> list[dict[str, Any]]:
    """Return the serialized form of the images."""
    return [image.to_dict() for image in images]
