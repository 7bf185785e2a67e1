"""mcp-helm serve action exposing the chart queries as MCP tools."""

import json
import logging
from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
from typing import cast, Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations

from mcp_helm.client import HelmClient
from mcp_helm.exceptions import InputException, McpHelmException
from mcp_helm.image import image_dicts

from . import common

_LOGGER = logging.getLogger(__name__)

SERVER_NAME = "Helm MCP Server"
DEFAULT_LISTEN_ADDR = ":8012"
DEFAULT_HOST = "0.0.0.0"

REPOSITORY_URL_HELP = (
    "Helm repository URL. Supports HTTP repos (e.g., https://charts.example.com) "
    "and OCI registries (e.g., oci://ghcr.io/org/charts/mychart)"
)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False)


def parse_listen_addr(listen_addr: str) -> tuple[str, int]:
    """Split a `host:port` listen address, defaulting to all interfaces."""
    host, sep, port = listen_addr.rpartition(":")
    if not sep or not port.isdigit():
        raise InputException(f"Invalid listen address '{listen_addr}', expected host:port")
    return host or DEFAULT_HOST, int(port)


def register_tools(server: FastMCP, client: HelmClient) -> None:
    """Register the chart tools on the server."""

    @server.tool(
        name="list_repository_charts",
        description="Lists all charts available in the repository",
        annotations=READ_ONLY,
    )
    async def list_repository_charts(repository_url: str) -> str:
        try:
            charts = await client.list_charts(repository_url.strip())
        except McpHelmException as err:
            raise ToolError(f"failed to list charts: {err}") from err
        return ", ".join(charts)

    @server.tool(
        name="list_chart_versions",
        description="Lists all versions of the chart, newest first",
        annotations=READ_ONLY,
    )
    async def list_chart_versions(repository_url: str, chart_name: str = "") -> str:
        try:
            params = await client.resolve_params(
                repository_url, chart_name, resolve_latest=False
            )
            versions = await client.list_chart_versions(
                params.repository_url, params.chart_name
            )
        except McpHelmException as err:
            raise ToolError(f"failed to list chart versions: {err}") from err
        return ", ".join(versions)

    @server.tool(
        name="get_latest_version_of_chart",
        description="Retrieves the latest version of the chart",
        annotations=READ_ONLY,
    )
    async def get_latest_version_of_chart(
        repository_url: str, chart_name: str = ""
    ) -> str:
        try:
            params = await client.resolve_params(repository_url, chart_name)
        except McpHelmException as err:
            raise ToolError(f"failed to get the latest chart version: {err}") from err
        return params.chart_version

    @server.tool(
        name="get_chart_values",
        description=(
            "Retrieves the default values.yaml of the chart. If the version is "
            "omitted the latest version is used"
        ),
        annotations=READ_ONLY,
    )
    async def get_chart_values(
        repository_url: str, chart_name: str = "", chart_version: str = ""
    ) -> str:
        try:
            params = await client.resolve_params(
                repository_url, chart_name, chart_version
            )
            return await client.get_chart_values(
                params.repository_url, params.chart_name, params.chart_version
            )
        except McpHelmException as err:
            raise ToolError(f"failed to get chart values: {err}") from err

    @server.tool(
        name="get_chart_contents",
        description=(
            "Retrieves full chart contents. Supports both HTTP repositories and OCI "
            "registries. Set recursive to include the files of subcharts"
        ),
        annotations=READ_ONLY,
    )
    async def get_chart_contents(
        repository_url: str,
        chart_name: str = "",
        chart_version: str = "",
        recursive: bool = False,
    ) -> str:
        try:
            params = await client.resolve_params(
                repository_url, chart_name, chart_version
            )
            return await client.get_chart_contents(
                params.repository_url,
                params.chart_name,
                params.chart_version,
                recursive,
            )
        except McpHelmException as err:
            raise ToolError(f"failed to get chart contents: {err}") from err

    @server.tool(
        name="get_chart_dependencies",
        description="Retrieves the dependencies declared by the chart and its subcharts",
        annotations=READ_ONLY,
    )
    async def get_chart_dependencies(
        repository_url: str, chart_name: str = "", chart_version: str = ""
    ) -> str:
        try:
            params = await client.resolve_params(
                repository_url, chart_name, chart_version
            )
            dependencies = await client.get_chart_dependencies(
                params.repository_url, params.chart_name, params.chart_version
            )
        except McpHelmException as err:
            raise ToolError(f"failed to get chart dependencies: {err}") from err
        return "[" + ",".join(dependencies) + "]"

    @server.tool(
        name="get_chart_images",
        description=(
            "Extracts container images used in a Helm chart by rendering templates "
            "and parsing Kubernetes manifests. custom_values is a JSON object of "
            "values overriding the chart defaults"
        ),
        annotations=READ_ONLY,
    )
    async def get_chart_images(
        repository_url: str,
        chart_name: str = "",
        chart_version: str = "",
        recursive: bool = False,
        custom_values: str = "",
    ) -> str:
        try:
            params = await client.resolve_params(
                repository_url, chart_name, chart_version
            )
            values = common.parse_custom_values(custom_values)
            images = await client.get_chart_images(
                params.repository_url,
                params.chart_name,
                params.chart_version,
                values,
                recursive,
            )
        except McpHelmException as err:
            raise ToolError(f"failed to extract images: {err}") from err
        result: dict[str, Any] = {
            "chart": params.chart_name,
            "version": params.chart_version,
            "imageCount": len(images),
            "images": image_dicts(images),
        }
        return json.dumps(result, indent=2)


def build_server(client: HelmClient) -> FastMCP:
    """Create the MCP server with all chart tools registered."""
    server = FastMCP(SERVER_NAME)
    register_tools(server, client)
    return server


class ServeAction:
    """Run the MCP server."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "serve",
                help="Run the MCP server",
                description="Serve the chart inspection tools over the Model Context Protocol",
            ),
        )
        args.add_argument(
            "--mode",
            choices=["stdio", "sse", "http"],
            default="stdio",
            help="Transport to serve the MCP protocol over",
        )
        args.add_argument(
            "--http-listen-addr",
            default=DEFAULT_LISTEN_ADDR,
            help="Address to listen on in sse and http modes",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        client: HelmClient,
        mode: str,
        http_listen_addr: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        server = build_server(client)
        _LOGGER.info("Starting %s in %s mode", SERVER_NAME, mode)
        if mode == "stdio":
            await server.run_async(transport="stdio")
            return
        host, port = parse_listen_addr(http_listen_addr)
        await server.run_async(transport=mode, host=host, port=port)
