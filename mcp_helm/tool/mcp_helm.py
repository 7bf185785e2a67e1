"""Command line tool for inspecting helm chart repositories and registries."""

import argparse
import asyncio
import logging
from pathlib import Path
import sys
import tempfile
import traceback

from mcp_helm.client import HelmClient
from mcp_helm.config import ClientOptions, read_password_file
from mcp_helm.exceptions import InputException, McpHelmException
from . import get, serve

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for inspecting helm chart repositories.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )
    parser.add_argument(
        "--username",
        help="Username for authentication (OCI registries and HTTP repositories)",
    )
    parser.add_argument(
        "--password-file",
        type=Path,
        help="Path to file containing password for authentication",
    )
    parser.add_argument(
        "--registry-credentials",
        help="Path to registry credentials file (e.g., Docker config.json)",
    )
    parser.add_argument(
        "--registry-plain-http",
        action="store_true",
        help="Use plain HTTP for OCI registry connections (insecure)",
    )
    parser.add_argument(
        "--tls-cert", help="Path to TLS client certificate file for HTTP repositories"
    )
    parser.add_argument(
        "--tls-key", help="Path to TLS client key file for HTTP repositories"
    )
    parser.add_argument(
        "--tls-ca",
        help="Path to CA certificate file for verifying HTTP repository servers",
    )
    parser.add_argument(
        "--tls-insecure-skip-verify",
        action="store_true",
        help="Skip TLS certificate verification for HTTP repositories (insecure)",
    )
    parser.add_argument(
        "--pass-credentials-all",
        action="store_true",
        help="Pass credentials to all domains when following redirects",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    serve.ServeAction.register(subparsers)
    for action in get.ACTIONS:
        action.register(subparsers)
    return parser


def client_options(args: argparse.Namespace) -> ClientOptions:
    """Build the client options from the command line flags."""
    if bool(args.username) != bool(args.password_file):
        missing = "--password-file" if args.username else "--username"
        raise InputException(
            f"Both --username and --password-file must be provided together (missing {missing})"
        )
    options = ClientOptions(
        username=args.username,
        password=read_password_file(args.password_file) if args.password_file else None,
        registry_credentials=args.registry_credentials,
        plain_http=args.registry_plain_http,
        cert_file=args.tls_cert,
        key_file=args.tls_key,
        ca_file=args.tls_ca,
        insecure_skip_tls_verify=args.tls_insecure_skip_verify,
        pass_credentials_all=args.pass_credentials_all,
    )
    options.validate()
    return options


async def _run(args: argparse.Namespace) -> None:
    """Run the selected action with a client that lives for the whole command."""
    options = client_options(args)
    with tempfile.TemporaryDirectory(prefix="mcp-helm-") as tmp_dir:
        client = HelmClient.build(Path(tmp_dir), options)
        action = args.cls()
        await action.run(client=client, **vars(args))


def main() -> None:
    """mcp-helm command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args()

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    try:
        asyncio.run(_run(args))
    except McpHelmException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print(f"mcp-helm error: {err}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
