"""Tests for config."""

from pathlib import Path

import pytest

from mcp_helm.config import ClientOptions, read_password_file
from mcp_helm.exceptions import InputException


def test_default_options() -> None:
    """Test the default options are valid and anonymous."""
    options = ClientOptions()
    options.validate()
    assert not options.has_basic_auth


def test_basic_auth() -> None:
    """Test a complete username and password."""
    options = ClientOptions(username="user", password="pass")
    options.validate()
    assert options.has_basic_auth


@pytest.mark.parametrize(
    ("options", "match"),
    [
        (ClientOptions(username="user"), "missing password"),
        (ClientOptions(password="pass"), "missing username"),
        (ClientOptions(cert_file="tls.crt"), "missing key file"),
        (ClientOptions(key_file="tls.key"), "missing certificate file"),
    ],
    ids=["username", "password", "cert", "key"],
)
def test_partial_options(options: ClientOptions, match: str) -> None:
    """Test that paired options must be provided together."""
    with pytest.raises(InputException, match=match):
        options.validate()


def test_read_password_file(tmp_path: Path) -> None:
    """Test reading a password strips surrounding whitespace."""
    password_file = tmp_path / "password"
    password_file.write_text("  s3cr3t\n")
    assert read_password_file(password_file) == "s3cr3t"


def test_read_missing_password_file(tmp_path: Path) -> None:
    """Test reading a password file that does not exist."""
    with pytest.raises(InputException, match="Failed to read password file"):
        read_password_file(tmp_path / "missing")
