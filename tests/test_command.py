"""Tests for command library."""

import pytest

from mcp_helm import command
from mcp_helm.command import Command, run
from mcp_helm.exceptions import CommandException, HelmException


async def test_command() -> None:
    """Test stdout parsing of a command."""
    result = await run(Command(["echo", "Hello"]))
    assert result == "Hello\n"


async def test_command_env() -> None:
    """Test that environment variables are passed to the command."""
    result = await run(Command(["sh", "-c", "echo $GREETING"], env={"GREETING": "Hi"}))
    assert result == "Hi\n"


async def test_command_arguments_not_interpreted() -> None:
    """Test that arguments are passed without a shell."""
    result = await run(Command(["echo", "$HOME", "a;b"]))
    assert result == "$HOME a;b\n"


async def test_failed_command() -> None:
    """Test a failing command."""
    with pytest.raises(CommandException, match="return code 1"):
        await run(Command(["/bin/false"]))


async def test_failed_command_exception_type() -> None:
    """Test the exception raised for a failing command is configurable."""
    with pytest.raises(HelmException, match="oops"):
        await run(Command(["sh", "-c", "echo oops >&2; exit 3"], exc=HelmException))


async def test_command_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that a slow command is reported as failed."""
    monkeypatch.setattr(command, "_TIMEOUT", 0.1)
    with pytest.raises(HelmException, match="timed out"):
        await run(Command(["sleep", "5"], exc=HelmException))


def test_command_redacts_password() -> None:
    """Test that the debug string of a command hides passwords."""
    cmd = Command(
        ["helm", "pull", "oci://ghcr.io/org/podinfo", "--password", "s3cr3t"]
    )
    assert str(cmd) == "helm pull oci://ghcr.io/org/podinfo --password ******"
    assert "s3cr3t" in cmd.string
