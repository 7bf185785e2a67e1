"""Tests for the mcp-helm command line."""

from pathlib import Path
import sys
from typing import Any

import pytest

from mcp_helm.client import HelmClient
from mcp_helm.exceptions import InputException
from mcp_helm.tool import get
from mcp_helm.tool.mcp_helm import _make_parser, client_options, main

REPO_URL = "https://charts.example.com"

INDEX = """
entries:
  podinfo:
    - name: podinfo
      version: 6.5.0
      urls:
        - podinfo-6.5.0.tgz
"""

MANIFESTS = """
apiVersion: apps/v1
kind: DaemonSet
metadata:
  name: agent
spec:
  template:
    spec:
      initContainers:
        - name: setup
          image: busybox
      containers:
        - name: agent
          image: quay.io/org/agent:v1
"""


def run_main(monkeypatch: pytest.MonkeyPatch, args: list[str]) -> None:
    """Run the command line with the specified arguments."""
    monkeypatch.setattr(sys, "argv", ["mcp-helm", *args])
    main()


def test_client_options(tmp_path: Path) -> None:
    """Test building client options from the global flags."""
    password_file = tmp_path / "password"
    password_file.write_text("s3cr3t\n")
    args = _make_parser().parse_args(
        [
            "--username",
            "user",
            "--password-file",
            str(password_file),
            "--registry-plain-http",
            "--tls-cert",
            "tls.crt",
            "--tls-key",
            "tls.key",
            "charts",
            REPO_URL,
        ]
    )
    options = client_options(args)
    assert options.username == "user"
    assert options.password == "s3cr3t"
    assert options.plain_http
    assert options.cert_file == "tls.crt"
    assert options.key_file == "tls.key"
    assert not options.insecure_skip_tls_verify


@pytest.mark.parametrize(
    ("flags", "match"),
    [
        (["--username", "user"], "missing --password-file"),
        (["--password-file", "password"], "missing --username"),
        (["--tls-key", "tls.key"], "missing certificate file"),
    ],
)
def test_invalid_client_options(flags: list[str], match: str) -> None:
    """Test flags that must be provided together."""
    args = _make_parser().parse_args([*flags, "charts", REPO_URL])
    with pytest.raises(InputException, match=match):
        client_options(args)


def test_parse_images_flags() -> None:
    """Test the flags of the images command."""
    args = _make_parser().parse_args(
        [
            "images",
            REPO_URL,
            "podinfo",
            "--version",
            "6.5.0",
            "--recursive",
            "--values",
            "{}",
            "-o",
            "json",
        ]
    )
    assert args.cls is get.ImagesAction
    assert args.repository_url == REPO_URL
    assert args.chart_name == "podinfo"
    assert args.chart_version == "6.5.0"
    assert args.recursive
    assert args.custom_values == "{}"
    assert args.output == "json"


def test_parse_dependencies_alias() -> None:
    """Test the short name of the dependencies command."""
    args = _make_parser().parse_args(["deps", "oci://ghcr.io/org/charts/podinfo"])
    assert args.cls is get.DependenciesAction
    assert args.chart_name is None
    assert args.chart_version is None


def test_main_oci_charts(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test listing the chart of an OCI locator."""
    run_main(monkeypatch, ["charts", "oci://ghcr.io/org/charts/podinfo"])
    assert capsys.readouterr().out == "podinfo\n"


@pytest.mark.parametrize(
    ("args", "message"),
    [
        (
            ["charts", "oci://ghcr.io/org/charts/"],
            "Invalid OCI reference: cannot extract chart name from "
            "oci://ghcr.io/org/charts/",
        ),
        (["latest", REPO_URL], "chart_name is required for HTTP repositories"),
        (
            ["--username", "user", "charts", REPO_URL],
            "Both --username and --password-file must be provided together "
            "(missing --password-file)",
        ),
    ],
)
def test_main_error(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    args: list[str],
    message: str,
) -> None:
    """Test errors are printed once with a single prefix and exit with a failure."""
    with pytest.raises(SystemExit) as exc_info:
        run_main(monkeypatch, args)
    assert exc_info.value.code == 1
    assert capsys.readouterr().err == f"mcp-helm error: {message}\n"


@pytest.fixture(name="podinfo")
def podinfo_fixture(helm: Any, chart_archive: Any) -> None:
    """Fixture serving a chart with a daemonset."""
    helm.indexes[REPO_URL] = INDEX
    helm.manifests["podinfo"] = MANIFESTS
    helm.archives[(f"{REPO_URL}/podinfo-6.5.0.tgz", "6.5.0")] = chart_archive(
        "podinfo",
        {"Chart.yaml": "name: podinfo\nversion: 6.5.0\n"},
    )


@pytest.mark.usefixtures("podinfo")
async def test_images_table(
    client: HelmClient, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test printing the images of a chart as a table."""
    await get.ImagesAction().run(
        client=client,
        repository_url=REPO_URL,
        chart_name="podinfo",
        chart_version=None,
        recursive=False,
        custom_values=None,
        output="table",
    )
    assert capsys.readouterr().out.splitlines() == [
        "IMAGE                   REGISTRY     REPOSITORY         TAG       SOURCE",
        "busybox                 docker.io    library/busybox    latest    DaemonSet/agent (init)",
        "quay.io/org/agent:v1    quay.io      org/agent          v1        DaemonSet/agent",
    ]


@pytest.mark.usefixtures("podinfo")
async def test_images_yaml(
    client: HelmClient, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test printing the image summary as yaml."""
    await get.ImagesAction().run(
        client=client,
        repository_url=REPO_URL,
        chart_name="podinfo",
        chart_version="6.5.0",
        recursive=False,
        custom_values=None,
        output="yaml",
    )
    out = capsys.readouterr().out
    assert out.startswith("---\nchart: podinfo\nversion: 6.5.0\nimageCount: 2\n")
