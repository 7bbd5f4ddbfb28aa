"""OCI client library for Python

This module provides a Python API to fetch an image reference from an OCI
registry into a MemoryStore and resolve the documents it points to.
"""
import logging

from httpx import HTTPError
from pydantic import ValidationError

from manifest_tool.oci.auth import RegistryHostError
from manifest_tool.oci.client import AuthenticationError, Client, create_client
from manifest_tool.oci.config import ImageConfig
from manifest_tool.oci.descriptor import EMPTY_DESCRIPTOR, Descriptor, Platform
from manifest_tool.oci.errors import (
    ContentNotFoundError,
    DecodeError,
    DigestMismatchError,
    ManifestToolError,
    ResolutionError,
    UnknownMediaTypeError,
)
from manifest_tool.oci.index import Index
from manifest_tool.oci.manifest import Manifest
from manifest_tool.oci.media_types import IndexKind, ManifestKind, classify
from manifest_tool.oci.reference import Reference, parse_reference
from manifest_tool.oci.resolve import (
    ResolvedImage,
    ResolvedIndex,
    resolve,
    resolve_entry,
)
from manifest_tool.oci.store import MemoryStore, compute_digest

logger = logging.getLogger(__name__)


def _store_verified(
    store: MemoryStore, data: bytes, media_type: str, expected: str | None
) -> str:
    """Put `data` in the store after checking it against the expected digest"""
    if expected:
        algorithm = expected.partition(":")[0]
        try:
            actual = compute_digest(data, algorithm)
        except ValueError:
            raise ResolutionError(f"unsupported digest algorithm: {expected}")
        if actual != expected:
            raise DigestMismatchError(
                f"digest mismatch: expected {expected}, got {actual}"
            )
        return store.put(data, media_type, algorithm=algorithm)
    return store.put(data, media_type)


def _fetch_manifest(
    client: Client, name: str, descriptor: Descriptor, store: MemoryStore
):
    if descriptor.digest in store:
        return
    data, _, _ = client.pull_manifest(
        name=name, reference=descriptor.digest, media_type=descriptor.mediaType
    )
    _store_verified(store, data, descriptor.mediaType, descriptor.digest)


def _fetch_blob(
    client: Client, name: str, descriptor: Descriptor, store: MemoryStore
):
    if descriptor.digest in store:
        return
    data = client.pull_blob(name=name, digest=descriptor.digest)
    _store_verified(store, data, descriptor.mediaType, descriptor.digest)


def fetch_descriptor(
    client: Client, reference: Reference, store: MemoryStore
) -> Descriptor:
    """Resolve `reference` to its root descriptor and fill `store`

    For an index every single-platform manifest it lists is fetched,
    for a manifest its image config is fetched.
    Layers are never downloaded.
    """
    name = reference.path
    target = reference.digest or reference.tag
    logger.info("Resolving %s", reference)
    try:
        data, media_type, digest = client.pull_manifest(name=name, reference=target)
        if reference.digest and not digest:
            digest = reference.digest
        digest = _store_verified(store, data, media_type, digest)
        descriptor = Descriptor(mediaType=media_type, digest=digest, size=len(data))
        logger.debug("Resolved %s to %s (%s)", reference, digest, media_type)

        match classify(media_type):
            case IndexKind():
                try:
                    index = Index.model_validate_json(data)
                except ValidationError:
                    logger.debug("Unable to list the entries of %s", digest)
                    return descriptor
                for entry in index.manifests:
                    if isinstance(classify(entry.mediaType), ManifestKind):
                        _fetch_manifest(client, name, entry, store)
                    else:
                        logger.debug(
                            "Not fetching %s with media type %s",
                            entry.digest,
                            entry.mediaType,
                        )
            case ManifestKind():
                try:
                    manifest = Manifest.model_validate_json(data)
                except ValidationError:
                    logger.debug("Unable to read the config of %s", digest)
                    return descriptor
                _fetch_blob(client, name, manifest.config, store)
    except HTTPError as e:
        raise ResolutionError(f"failed to resolve {reference}: {e}") from e
    return descriptor


__all__ = [
    "AuthenticationError",
    "Client",
    "ContentNotFoundError",
    "DecodeError",
    "Descriptor",
    "DigestMismatchError",
    "EMPTY_DESCRIPTOR",
    "ImageConfig",
    "Index",
    "Manifest",
    "ManifestToolError",
    "MemoryStore",
    "Platform",
    "Reference",
    "RegistryHostError",
    "ResolutionError",
    "ResolvedImage",
    "ResolvedIndex",
    "UnknownMediaTypeError",
    "create_client",
    "fetch_descriptor",
    "parse_reference",
    "resolve",
    "resolve_entry",
]
