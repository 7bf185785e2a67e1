"""Representation of rendered kubernetes manifests.

Rendered chart output is a stream of YAML documents. Documents are parsed into
a canonical tree where every mapping is a `dict` with `str` keys, so that
navigation code never has to care how the YAML loader represented a node.
"""

from collections.abc import Iterable, Mapping
import logging
import re
from typing import Any

import yaml

__all__ = [
    "Tree",
    "normalize_tree",
    "get_path",
    "split_documents",
    "parse_documents",
    "resource_label",
    "load_metadata",
]

_LOGGER = logging.getLogger(__name__)

Tree = dict[str, Any]

# A document separator line, optionally followed by a comment or directive.
_DOCUMENT_SEPARATOR = re.compile(r"^---(?:[ \t].*)?$", re.MULTILINE)


def normalize_tree(node: Any) -> Any:
    """Convert a deserialized YAML/JSON node into the canonical tree form.

    Mappings of any kind become `dict[str, Any]`, sequences become lists
    and scalars are returned as is.
    """
    if isinstance(node, Mapping):
        return {str(key): normalize_tree(value) for key, value in node.items()}
    if isinstance(node, (list, tuple)):
        return [normalize_tree(value) for value in node]
    return node


def get_path(tree: Any, path: Iterable[str]) -> Tree | None:
    """Return the mapping found by following the keys in path.

    Returns None when any step is missing or is not a mapping.
    """
    current = tree
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    if isinstance(current, dict):
        return current
    return None


def split_documents(content: str) -> list[str]:
    """Split a multi-document YAML stream into its non-blank fragments."""
    fragments = []
    for fragment in _DOCUMENT_SEPARATOR.split(content):
        if fragment := fragment.strip():
            fragments.append(fragment)
    return fragments


def parse_documents(content: str) -> list[Tree]:
    """Parse every mapping document in a YAML stream.

    A fragment that fails to parse, holds an invalid scalar such as an
    impossible date, nests without end through an alias, or is not a mapping
    is skipped.
    """
    docs: list[Tree] = []
    for fragment in split_documents(content):
        try:
            doc = yaml.safe_load(fragment)
            if not isinstance(doc, Mapping):
                _LOGGER.debug("Skipping manifest document that is not a mapping")
                continue
            docs.append(normalize_tree(doc))
        except (yaml.YAMLError, ValueError, RecursionError) as err:
            _LOGGER.debug("Skipping malformed manifest document: %s", err)
    return docs


def resource_label(doc: Tree) -> str:
    """Return a `<kind>/<name>` label for the object, or just the kind."""
    kind = doc.get("kind")
    if not isinstance(kind, str):
        kind = ""
    metadata = doc.get("metadata")
    if isinstance(metadata, dict):
        name = metadata.get("name")
        if isinstance(name, str) and name:
            return f"{kind}/{name}"
    return kind


class MetadataLoader(yaml.SafeLoader):
    """Safe loader that keeps numbers and dates as their original text.

    Chart metadata declares versions such as `1.10` that must not be read
    as floats.
    """


_TEXT_TAGS = {
    "tag:yaml.org,2002:int",
    "tag:yaml.org,2002:float",
    "tag:yaml.org,2002:timestamp",
}

MetadataLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _TEXT_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def load_metadata(content: str | bytes) -> Any:
    """Parse a `Chart.yaml` or `index.yaml` document."""
    return yaml.load(content, Loader=MetadataLoader)
