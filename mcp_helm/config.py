"""Configuration objects for mcp-helm."""

from dataclasses import dataclass
from pathlib import Path

from .exceptions import InputException

__all__ = [
    "ClientOptions",
    "read_password_file",
]


@dataclass
class ClientOptions:
    """Authentication and transport options for repositories and registries."""

    username: str | None = None
    """Username for OCI registries and HTTP repositories."""

    password: str | None = None
    """Password for OCI registries and HTTP repositories."""

    registry_credentials: str | None = None
    """Path to a Docker-style `config.json` used for OCI registries."""

    plain_http: bool = False
    """Use plain HTTP for OCI registry connections."""

    cert_file: str | None = None
    """TLS client certificate for HTTP repositories."""

    key_file: str | None = None
    """TLS client key for HTTP repositories."""

    ca_file: str | None = None
    """CA bundle used to verify HTTP repository servers."""

    insecure_skip_tls_verify: bool = False
    """Skip TLS certificate verification for HTTP repositories."""

    pass_credentials_all: bool = False
    """Pass credentials to all domains when following redirects."""

    def validate(self) -> None:
        """Raise InputException if paired options are only partially set."""
        if bool(self.username) != bool(self.password):
            missing = "password" if self.username else "username"
            raise InputException(
                f"Both username and password must be provided together (missing {missing})"
            )
        if bool(self.cert_file) != bool(self.key_file):
            missing = "key file" if self.cert_file else "certificate file"
            raise InputException(
                f"Both TLS certificate and key must be provided together (missing {missing})"
            )

    @property
    def has_basic_auth(self) -> bool:
        """Return True if a username and password are configured."""
        return bool(self.username and self.password)


def read_password_file(path: Path) -> str:
    """Read a password from a file, stripping surrounding whitespace."""
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as err:
        raise InputException(f"Failed to read password file {path}: {err}") from err
