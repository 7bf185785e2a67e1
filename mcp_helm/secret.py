"""Module for reading registry credentials."""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .exceptions import InputException

_LOGGER = logging.getLogger(__name__)


@dataclass
class Auth:
    """Authentication credentials."""

    username: str
    password: str


def registry_host(url: str) -> str:
    """Return the registry host of an OCI URL or reference."""
    if "://" not in url:
        url = f"oci://{url}"
    return urlparse(url).netloc


def get_auth_from_docker_config(repo_url: str, config_path: Path) -> Auth | None:
    """Return the username and password for the registry of repo_url.

    This will parse a Docker-style `config.json` and find the matching auth
    for the registry host.
    """
    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise InputException(
            f"Failed to read registry credentials {config_path}: {err}"
        ) from err
    try:
        if not (docker_config := json.loads(content)):
            return None
    except json.JSONDecodeError as err:
        raise InputException(
            f"Registry credentials {config_path} contain invalid JSON"
        ) from err

    if not (auths := docker_config.get("auths")):
        _LOGGER.debug("No auths found in %s", config_path)
        return None

    server_name = registry_host(repo_url)
    if not (server_auth := auths.get(server_name)):
        _LOGGER.debug("No auth found for server %s in %s", server_name, config_path)
        return None

    if (username := server_auth.get("username")) and (
        password := server_auth.get("password")
    ):
        return Auth(username=username, password=password)

    if not (auth_str := server_auth.get("auth")):
        _LOGGER.debug("No auth string found for server %s in %s", server_name, config_path)
        return None

    try:
        decoded_auth = base64.b64decode(auth_str).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as err:
        raise InputException(
            f"Invalid auth string for server {server_name} in {config_path}"
        ) from err
    if ":" not in decoded_auth:
        raise InputException(
            f"Invalid auth string for server {server_name} in {config_path}"
        )
    username, password = decoded_auth.split(":", 1)
    return Auth(username=username, password=password)
