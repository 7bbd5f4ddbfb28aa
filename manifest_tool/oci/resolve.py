"""Turn descriptors held in a MemoryStore into decoded OCI documents."""
import logging
from dataclasses import dataclass
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from manifest_tool.oci.config import ImageConfig
from manifest_tool.oci.descriptor import Descriptor
from manifest_tool.oci.errors import DecodeError, UnknownMediaTypeError
from manifest_tool.oci.index import Index
from manifest_tool.oci.manifest import Manifest
from manifest_tool.oci.media_types import (
    IndexKind,
    ManifestKind,
    UnknownKind,
    classify,
)
from manifest_tool.oci.store import MemoryStore

logger = logging.getLogger(__name__)

Model = TypeVar("Model", bound=BaseModel)


@dataclass
class ResolvedIndex:
    descriptor: Descriptor
    index: Index


@dataclass
class ResolvedImage:
    descriptor: Descriptor
    manifest: Manifest
    config: ImageConfig


def decode(model: type[Model], data: bytes, descriptor: Descriptor) -> Model:
    try:
        return model.model_validate_json(data)
    except ValidationError as e:
        raise DecodeError(
            f"unable to decode {descriptor.digest} as {model.__name__}: {e}"
        ) from e


def resolve(
    descriptor: Descriptor, store: MemoryStore
) -> ResolvedIndex | ResolvedImage:
    """Resolve the root descriptor of an image reference

    An index is returned as-is, its entries are resolved on demand
    through `resolve_entry`.
    A manifest is returned together with its decoded image config.
    """
    logger.debug("Resolving %s (%s)", descriptor.digest, descriptor.mediaType)
    _, data = store.get(descriptor)
    match classify(descriptor.mediaType):
        case IndexKind():
            return ResolvedIndex(descriptor, decode(Index, data, descriptor))
        case ManifestKind():
            manifest = decode(Manifest, data, descriptor)
            _, config_data = store.get(manifest.config)
            config = decode(ImageConfig, config_data, manifest.config)
            return ResolvedImage(descriptor, manifest, config)
        case UnknownKind(media_type):
            raise UnknownMediaTypeError(
                f"unknown descriptor type: {media_type}", media_type
            )


def resolve_entry(descriptor: Descriptor, store: MemoryStore) -> Manifest:
    """Resolve a single entry of an index to its manifest"""
    match classify(descriptor.mediaType):
        case ManifestKind():
            _, data = store.get(descriptor)
            return decode(Manifest, data, descriptor)
        case IndexKind(media_type) | UnknownKind(media_type):
            raise UnknownMediaTypeError(
                f"unknown media type for further display: {media_type}", media_type
            )
