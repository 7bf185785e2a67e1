"""Common flags and helpers shared by the mcp-helm actions."""

from argparse import ArgumentParser, BooleanOptionalAction
import json
from typing import Any

from mcp_helm.exceptions import InputException


def add_repository_flags(args: ArgumentParser) -> None:
    """Add the repository locator argument."""
    args.add_argument(
        "repository_url",
        help="Helm repository URL, e.g. https://charts.example.com or oci://ghcr.io/org/charts/mychart",
    )


def add_chart_flags(args: ArgumentParser, with_version: bool = True) -> None:
    """Add the repository and chart arguments."""
    add_repository_flags(args)
    args.add_argument(
        "chart_name",
        nargs="?",
        default=None,
        help="Chart name, optional for OCI URLs that already include the chart name",
    )
    if with_version:
        args.add_argument(
            "--version",
            dest="chart_version",
            default=None,
            help="Chart version, the latest version is used when omitted",
        )


def add_recursive_flag(args: ArgumentParser, help_text: str) -> None:
    """Add the flag for including subcharts."""
    args.add_argument(
        "--recursive",
        action=BooleanOptionalAction,
        default=False,
        help=help_text,
    )


def parse_custom_values(content: str | None) -> dict[str, Any] | None:
    """Parse a JSON object of values overriding the chart defaults."""
    if not content:
        return None
    try:
        values = json.loads(content)
    except json.JSONDecodeError as err:
        raise InputException(f"Failed to parse custom_values JSON: {err}") from err
    if not isinstance(values, dict):
        raise InputException("Failed to parse custom_values JSON: expected an object")
    return values
