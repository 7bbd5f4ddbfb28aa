"""Docker style image references

ref: https://github.com/distribution/reference/blob/main/reference.go
"""
import re
from dataclasses import dataclass

from manifest_tool.oci.errors import ManifestToolError

DEFAULT_DOMAIN = "docker.io"
OFFICIAL_REPO_PREFIX = "library/"

PATH_COMPONENT_PATTERN = r"[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*"
PATH_RE = re.compile(rf"{PATH_COMPONENT_PATTERN}(?:/{PATH_COMPONENT_PATTERN})*")
DOMAIN_RE = re.compile(
    r"(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?)"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?)*"
    r"(?::[0-9]+)?"
)
TAG_RE = re.compile(r"[\w][\w.-]{0,127}")
DIGEST_RE = re.compile(
    r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"
)


class InvalidReferenceError(ManifestToolError):
    """Raised when an image reference can not be parsed."""


class MissingTagError(ManifestToolError):
    """Raised when an image reference has no explicit tag."""


@dataclass(frozen=True, slots=True)
class Reference:
    domain: str
    path: str
    tag: str | None = None
    digest: str | None = None

    def __str__(self):
        value = f"{self.domain}/{self.path}"
        if self.tag:
            value += f":{self.tag}"
        if self.digest:
            value += f"@{self.digest}"
        return value

    @property
    def is_tagged(self) -> bool:
        return self.tag is not None

    def require_tag(self) -> "Reference":
        if not self.is_tagged:
            raise MissingTagError(
                "image reference must include a tag; "
                "manifest-tool does not default to 'latest'"
            )
        return self


def _split_domain(name: str) -> tuple[str, str]:
    domain, sep, remainder = name.partition("/")
    if not sep or (
        "." not in domain and ":" not in domain and domain != "localhost"
    ):
        domain, remainder = DEFAULT_DOMAIN, name
    if domain == DEFAULT_DOMAIN and "/" not in remainder:
        remainder = OFFICIAL_REPO_PREFIX + remainder
    return domain, remainder


def parse_reference(value: str) -> Reference:
    """Parse an image reference, normalizing it the way docker does

    `ubuntu:22.04` becomes `docker.io/library/ubuntu:22.04`.
    """
    if not value:
        raise InvalidReferenceError("image reference is empty")

    name, _, digest = value.partition("@")
    if digest and not DIGEST_RE.fullmatch(digest):
        raise InvalidReferenceError(f"invalid digest in reference: {value}")

    tag = None
    colon = name.rfind(":")
    if colon > name.rfind("/"):
        name, tag = name[:colon], name[colon + 1 :]
        if not TAG_RE.fullmatch(tag):
            raise InvalidReferenceError(f"invalid tag in reference: {value}")

    domain, path = _split_domain(name)
    if not DOMAIN_RE.fullmatch(domain):
        raise InvalidReferenceError(f"invalid registry domain in reference: {value}")
    if not PATH_RE.fullmatch(path):
        if PATH_RE.fullmatch(path.lower()):
            raise InvalidReferenceError(
                f"repository name must be lowercase: {value}"
            )
        raise InvalidReferenceError(f"invalid reference format: {value}")

    return Reference(domain=domain, path=path, tag=tag, digest=digest or None)
