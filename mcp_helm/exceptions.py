"""Exceptions related to mcp-helm."""

__all__ = [
    "McpHelmException",
    "InputException",
    "NotFoundError",
    "RepositoryException",
    "RegistryException",
    "CommandException",
    "HelmException",
]


class McpHelmException(Exception):
    """Generic base exception used for this library."""


class InputException(McpHelmException):
    """Raised when the input locators, charts or values are not formatted as expected."""


class NotFoundError(McpHelmException):
    """Raised when a chart, version or tag does not exist in a repository."""


class RepositoryException(McpHelmException):
    """Raised when a chart repository index could not be downloaded or parsed."""


class RegistryException(McpHelmException):
    """Raised when an OCI registry request fails."""


class CommandException(McpHelmException):
    """Raised when there is a failure running a subcommand."""


class HelmException(CommandException):
    """Raised when there is a failure running a helm command."""
