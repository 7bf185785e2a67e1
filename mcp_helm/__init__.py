"""
Read only introspection of helm chart repositories and OCI registries.

The library resolves chart versions from repository indexes or registry tags,
lists the dependencies declared by a chart and extracts the container images
used by its rendered manifests.
"""

__all__ = [
    "client",
    "chart",
    "image",
    "repo",
    "oci",
    "exceptions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
