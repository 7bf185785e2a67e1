"""Tests for the format library."""

import io

from mcp_helm.tool.format import (
    JsonFormatter,
    TableFormatter,
    YamlFormatter,
    format_columns,
)


def test_format_columns_empty_rows() -> None:
    """Tests with no rows."""
    assert list(format_columns(["a", "b", "c"], [])) == ["a    b    c"]


def test_format_columns_rows() -> None:
    """Tests format with normal rows"""
    assert list(
        format_columns(
            ["name", "version"], [["podinfo", "6.5.0"], ["redis", "18.0.0"]]
        )
    ) == [
        "name       version",
        "podinfo    6.5.0",
        "redis      18.0.0",
    ]


def test_table_formatter_empty() -> None:
    """Table formatting with no data."""
    formatter = TableFormatter({"fullImage": "IMAGE"})
    assert list(formatter.format([])) == []


def test_table_formatter() -> None:
    """Table formatting selects columns and blanks missing values."""
    formatter = TableFormatter({"fullImage": "IMAGE", "tag": "TAG", "source": "SOURCE"})
    assert list(
        formatter.format(
            [
                {
                    "fullImage": "nginx:1.25",
                    "tag": "1.25",
                    "registry": "docker.io",
                    "source": "Deployment/web",
                },
                {
                    "fullImage": "busybox@sha256:abc",
                    "tag": "",
                    "source": "Job/migrate",
                },
            ]
        )
    ) == [
        "IMAGE                 TAG     SOURCE",
        "nginx:1.25            1.25    Deployment/web",
        "busybox@sha256:abc            Job/migrate",
    ]


def test_yaml_formatter() -> None:
    """Yaml formatting of a single document."""
    formatter = YamlFormatter()
    data = {"chart": "podinfo", "images": [{"fullImage": "nginx:1.25"}]}
    assert list(formatter.format(data)) == [
        "---",
        "chart: podinfo",
        "images:",
        "- fullImage: nginx:1.25",
    ]


def test_json_formatter() -> None:
    """Json formatting prints indented output with a trailing newline."""
    formatter = JsonFormatter()
    out = io.StringIO()
    formatter.print({"chart": "podinfo", "imageCount": 0}, file=out)
    assert out.getvalue() == '{\n  "chart": "podinfo",\n  "imageCount": 0\n}\n'
