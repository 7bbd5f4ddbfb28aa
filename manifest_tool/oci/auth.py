"""Registry credentials from a docker formatted config.json

ref: https://docs.docker.com/reference/cli/docker/#configuration-files
"""
import base64
import binascii
import json
import logging
import os
from pathlib import Path

from manifest_tool.oci.errors import ManifestToolError

logger = logging.getLogger(__name__)

DOCKER_HUB_AUTH_KEY = "https://index.docker.io/v1/"


class RegistryHostError(ManifestToolError):
    """Raised when the registry host configuration can not be created."""


def config_dir() -> Path:
    """Return the default docker config directory"""
    if env := os.environ.get("DOCKER_CONFIG"):
        return Path(env)
    return Path.home() / ".docker"


def _auth_keys(host: str) -> list[str]:
    keys = [host, f"https://{host}", f"http://{host}"]
    if host in ("docker.io", "registry-1.docker.io", "index.docker.io"):
        keys.insert(0, DOCKER_HUB_AUTH_KEY)
    return keys


def load_credentials(
    config_file: Path | None, host: str
) -> tuple[str | None, str | None]:
    """Return the username and password stored for `host`

    A missing config file means no credentials.
    """
    if config_file is None or not config_file.is_file():
        logger.debug("No docker config at %s", config_file)
        return None, None
    try:
        config = json.loads(config_file.read_text())
    except (OSError, ValueError) as e:
        raise RegistryHostError(f"unable to read docker config {config_file}: {e}")

    if not isinstance(config, dict):
        raise RegistryHostError(f"docker config {config_file} is not a JSON object")
    auths = config.get("auths") or {}
    if not isinstance(auths, dict):
        raise RegistryHostError(f"invalid auths section in {config_file}")
    for key in _auth_keys(host):
        if (entry := auths.get(key)) is None:
            continue
        if not isinstance(entry, dict):
            raise RegistryHostError(f"invalid auth entry for {key} in {config_file}")
        if encoded := entry.get("auth"):
            try:
                username, _, password = (
                    base64.b64decode(encoded).decode("utf-8").partition(":")
                )
            except (binascii.Error, UnicodeDecodeError, TypeError) as e:
                raise RegistryHostError(
                    f"invalid auth entry for {key} in {config_file}: {e}"
                )
            return username, password
        if "username" in entry:
            return entry["username"], entry.get("password")
    return None, None
