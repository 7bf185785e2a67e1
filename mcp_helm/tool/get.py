"""mcp-helm actions that query a repository and print the result."""

import logging
from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
from typing import cast

from mcp_helm.client import HelmClient
from mcp_helm.image import image_dicts

from .format import FORMATTERS, TableFormatter
from . import common


_LOGGER = logging.getLogger(__name__)

IMAGE_COLUMNS = {
    "fullImage": "IMAGE",
    "registry": "REGISTRY",
    "repository": "REPOSITORY",
    "tag": "TAG",
    "source": "SOURCE",
}


class ChartsAction:
    """List the charts in a repository."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "charts",
                help="List charts in a repository",
                description="Print the names of all charts available in the repository",
            ),
        )
        common.add_repository_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        client: HelmClient,
        repository_url: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        for chart_name in await client.list_charts(repository_url.strip()):
            print(chart_name)


class VersionsAction:
    """List the versions of a chart."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "versions",
                help="List versions of a chart",
                description="Print the versions of a chart, newest first",
            ),
        )
        common.add_chart_flags(args, with_version=False)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        client: HelmClient,
        repository_url: str,
        chart_name: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        params = await client.resolve_params(
            repository_url, chart_name, resolve_latest=False
        )
        for version in await client.list_chart_versions(
            params.repository_url, params.chart_name
        ):
            print(version)


class LatestAction:
    """Print the latest version of a chart."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "latest",
                help="Get the latest version of a chart",
                description="Print the latest version of a chart",
            ),
        )
        common.add_chart_flags(args, with_version=False)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        client: HelmClient,
        repository_url: str,
        chart_name: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        params = await client.resolve_params(repository_url, chart_name)
        print(params.chart_version)


class DependenciesAction:
    """List the dependencies declared by a chart."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "dependencies",
                aliases=["deps"],
                help="List dependencies of a chart",
                description="Print the dependencies declared by a chart and its subcharts",
            ),
        )
        common.add_chart_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        client: HelmClient,
        repository_url: str,
        chart_name: str | None,
        chart_version: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        params = await client.resolve_params(repository_url, chart_name, chart_version)
        for dependency in await client.get_chart_dependencies(
            params.repository_url, params.chart_name, params.chart_version
        ):
            print(dependency)


class ImagesAction:
    """List the container images used by a chart."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "images",
                help="List container images of a chart",
                description="Render a chart and print the container images of its workloads",
            ),
        )
        common.add_chart_flags(args)
        common.add_recursive_flag(
            args, help_text="Also render each subchart and include its images"
        )
        args.add_argument(
            "--values",
            dest="custom_values",
            default=None,
            help="JSON object of values overriding the chart defaults",
        )
        args.add_argument(
            "--output",
            "-o",
            choices=["table", *FORMATTERS],
            default="table",
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        client: HelmClient,
        repository_url: str,
        chart_name: str | None,
        chart_version: str | None,
        recursive: bool,
        custom_values: str | None,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        values = common.parse_custom_values(custom_values)
        params = await client.resolve_params(repository_url, chart_name, chart_version)
        images = await client.get_chart_images(
            params.repository_url,
            params.chart_name,
            params.chart_version,
            values,
            recursive,
        )
        if output == "table":
            TableFormatter(IMAGE_COLUMNS).print(image_dicts(images))
            return
        FORMATTERS[output]().print(
            {
                "chart": params.chart_name,
                "version": params.chart_version,
                "imageCount": len(images),
                "images": image_dicts(images),
            }
        )


class ValuesAction:
    """Print the default values of a chart."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "values",
                help="Get the default values of a chart",
                description="Print the values.yaml of a chart",
            ),
        )
        common.add_chart_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        client: HelmClient,
        repository_url: str,
        chart_name: str | None,
        chart_version: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        params = await client.resolve_params(repository_url, chart_name, chart_version)
        print(
            await client.get_chart_values(
                params.repository_url, params.chart_name, params.chart_version
            ),
            end="",
        )


class ContentsAction:
    """Print all files of a chart."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "contents",
                help="Get the files of a chart",
                description="Print every file of a chart with a header naming the file",
            ),
        )
        common.add_chart_flags(args)
        common.add_recursive_flag(args, help_text="Also print the files of subcharts")
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        client: HelmClient,
        repository_url: str,
        chart_name: str | None,
        chart_version: str | None,
        recursive: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        params = await client.resolve_params(repository_url, chart_name, chart_version)
        print(
            await client.get_chart_contents(
                params.repository_url,
                params.chart_name,
                params.chart_version,
                recursive,
            ),
            end="",
        )


ACTIONS = [
    ChartsAction,
    VersionsAction,
    LatestAction,
    DependenciesAction,
    ImagesAction,
    ValuesAction,
    ContentsAction,
]
