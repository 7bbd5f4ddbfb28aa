from __future__ import annotations

import logging
from contextlib import suppress
from pathlib import Path
from urllib.parse import urlparse, urlunparse

import httpx

from manifest_tool.oci.auth import load_credentials
from manifest_tool.oci.errors import ResolutionError
from manifest_tool.oci.media_types import ACCEPT
from manifest_tool.oci.reference import Reference

logger = logging.getLogger(__name__)

DOCKER_HUB = "registry-1.docker.io"


class AuthenticationError(ResolutionError):
    """Raised when authentication fails."""


def _clean_url(registry_url: str, plain_http: bool = False) -> str:
    if "://" not in registry_url:
        registry_url = f"{'http' if plain_http else 'https'}://{registry_url}"
    parts = urlparse(registry_url)
    if parts.netloc == "docker.io":
        parts = parts._replace(netloc=DOCKER_HUB)
    return urlunparse(parts)


def _parse_www_auth(www_authenticate: str) -> tuple[str, dict[str, str]]:
    """Parse the WWW-Authenticate header into its scheme and parameters"""
    scheme, _, params = www_authenticate.partition(" ")
    result = {}
    for item in params.split(","):
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        result[key.strip()] = value.strip().strip('"')
    return scheme.lower(), result


class BearerAuth(httpx.Auth):
    """Attaches HTTP Bearer Authentication to the given Request object."""

    def __init__(self, token: str):
        self.token = token

    def auth_flow(self, request):
        request.headers["Authorization"] = f"Bearer {self.token}"
        yield request


class Client:
    """Client for the pull side of the OCI distribution API."""

    def __init__(
        self,
        registry_url: str,
        username: str | None = None,
        password: str | None = None,
        insecure: bool = False,
        plain_http: bool = False,
        transport: httpx.BaseTransport | None = None,
    ):
        self.registry_url = _clean_url(registry_url, plain_http=plain_http)
        self.username = username
        self.password = password
        self.insecure = insecure
        self._transport = transport
        self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # TODO: Parse the registry error body into the raised error
    #   https://github.com/opencontainers/distribution-spec/blob/main/spec.md#error-codes

    @property
    def session(self):
        if self._session is None:
            self._session = httpx.Client(
                follow_redirects=True,
                max_redirects=5,
                verify=not self.insecure,
                transport=self._transport,
            )
        return self._session

    def get(self, uri, scope: str | None = None, **kwargs) -> httpx.Response:
        """GET `uri`, authenticating once when the registry asks for it"""
        url = f"{self.registry_url}{uri}"
        result = self.session.get(url, **kwargs)
        if result.status_code == 401 and "WWW-Authenticate" in result.headers:
            scheme, challenge = _parse_www_auth(result.headers["WWW-Authenticate"])
            logger.debug("Authentication challenge: %s %s", scheme, challenge)
            if scheme == "basic":
                self.session.auth = self._basic_auth()
            else:
                if "realm" not in challenge:
                    raise AuthenticationError(
                        f"{self.registry_url} sent a challenge without a realm"
                    )
                self.authenticate(
                    token_url=challenge["realm"],
                    service=challenge.get("service"),
                    scope=scope or challenge.get("scope"),
                )
            result = self.session.get(url, **kwargs)
        return result

    def close(self):
        if self._session is not None:
            self._session.close()
            self._session = None

    def _basic_auth(self) -> tuple[str, str]:
        if not self.password:
            raise AuthenticationError(
                f"{self.registry_url} requires authentication, "
                f"provide a username and/or password."
            )
        return (self.username or "", self.password)

    def authenticate(self, token_url, service, scope):
        """Use the token api to get a token, anonymously if no password is set

        ref: https://distribution.github.io/distribution/spec/auth/token/
        """
        params = {"service": service, "scope": scope}
        auth = None
        if self.password:
            params["client_id"] = self.username
            auth = self._basic_auth()
        response = self.session.get(
            token_url,
            params={k: v for k, v in params.items() if v},
            auth=auth,
        )
        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"{self.registry_url} rejected the provided credentials"
            )
        response.raise_for_status()
        try:
            body = response.json()
            token = body.get("token") or body.get("access_token")
        except (ValueError, AttributeError):
            raise AuthenticationError(f"invalid token response from {token_url}")
        if not token:
            raise AuthenticationError(f"no token received from {token_url}")
        self.session.auth = BearerAuth(token)

    def pull_manifest(
        self, name: str, reference: str, media_type: str = ACCEPT
    ) -> tuple[bytes, str, str | None]:
        """Fetch a manifest by tag or digest

        Returns the raw content, its media type and the digest reported
        by the registry, if any.
        """
        uri = f"/v2/{name}/manifests/{reference}"
        result = self.get(
            uri,
            scope=f"repository:{name}:pull",
            headers={"Accept": media_type},
        )
        if result.status_code == 403:
            logger.debug(result.headers)
        result.raise_for_status()
        content_type = result.headers.get("Content-Type", "").split(";")[0].strip()
        if not content_type or content_type == "application/json":
            with suppress(ValueError, AttributeError):
                content_type = result.json().get("mediaType", content_type)
        return (
            result.content,
            content_type,
            result.headers.get("Docker-Content-Digest"),
        )

    def pull_blob(self, name: str, digest: str) -> bytes:
        uri = f"/v2/{name}/blobs/{digest}"
        result = self.get(uri, scope=f"repository:{name}:pull")
        result.raise_for_status()
        return result.content


def create_client(
    reference: Reference,
    username: str | None = None,
    password: str | None = None,
    insecure: bool = False,
    plain_http: bool = False,
    docker_cfg: Path | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Client:
    """Create a registry client for the host of `reference`

    Explicit credentials take precedence over the docker config file.
    """
    if not username and not password:
        username, password = load_credentials(docker_cfg, reference.domain)
    return Client(
        registry_url=reference.domain,
        username=username,
        password=password,
        insecure=insecure,
        plain_http=plain_http,
        transport=transport,
    )
