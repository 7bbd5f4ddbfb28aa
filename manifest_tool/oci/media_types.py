"""Media types understood by manifest-tool.

`classify` maps a media type string to exactly one of the kinds below,
callers dispatch on the result with ``match``.
"""
from dataclasses import dataclass

OCI_INDEX = "application/vnd.oci.image.index.v1+json"
OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"

INDEX_TYPES = (OCI_INDEX, DOCKER_MANIFEST_LIST)
MANIFEST_TYPES = (OCI_MANIFEST, DOCKER_MANIFEST)

# Accept header for manifest requests
ACCEPT = ", ".join(INDEX_TYPES + MANIFEST_TYPES)


@dataclass(frozen=True, slots=True)
class IndexKind:
    """Multi-platform index or Docker manifest list"""

    media_type: str


@dataclass(frozen=True, slots=True)
class ManifestKind:
    """Single-platform image manifest"""

    media_type: str


@dataclass(frozen=True, slots=True)
class UnknownKind:
    media_type: str


MediaKind = IndexKind | ManifestKind | UnknownKind


def classify(media_type: str) -> MediaKind:
    if media_type in INDEX_TYPES:
        return IndexKind(media_type)
    if media_type in MANIFEST_TYPES:
        return ManifestKind(media_type)
    return UnknownKind(media_type)
