import json

import pytest

from manifest_tool.oci import Descriptor, MemoryStore
from manifest_tool.oci.attestation import (
    ATTESTATION_MANIFEST,
    REFERENCE_DIGEST,
    REFERENCE_TYPE,
)
from manifest_tool.oci.media_types import OCI_INDEX, OCI_MANIFEST

CONFIG_TYPE = "application/vnd.oci.image.config.v1+json"
LAYER_TYPE = "application/vnd.oci.image.layer.v1.tar+gzip"
IN_TOTO_TYPE = "application/vnd.in-toto+json"

LAYER_A = "sha256:" + "a" * 64
LAYER_B = "sha256:" + "b" * 64


def put_json(store: MemoryStore, document: dict, media_type: str) -> Descriptor:
    data = json.dumps(document).encode("utf-8")
    digest = store.put(data, media_type)
    return Descriptor(mediaType=media_type, digest=digest, size=len(data))


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def add_image(store):
    """Return a factory storing an image config and manifest"""

    def factory(
        os="linux",
        architecture="amd64",
        layers=(LAYER_A,),
        layer_type=LAYER_TYPE,
        media_type=OCI_MANIFEST,
        **extra,
    ) -> Descriptor:
        config = put_json(
            store,
            {
                "architecture": architecture,
                "os": os,
                "rootfs": {"type": "layers", "diff_ids": list(layers)},
            },
            CONFIG_TYPE,
        )
        manifest = {
            "schemaVersion": 2,
            "mediaType": media_type,
            "config": config.dump(),
            "layers": [
                {"mediaType": layer_type, "digest": digest, "size": 1024}
                for digest in layers
            ],
        } | extra
        return put_json(store, manifest, media_type)

    return factory


@pytest.fixture
def add_index(store):
    """Return a factory storing an index of the given entries"""

    def factory(*entries: Descriptor, **extra) -> Descriptor:
        index = {
            "schemaVersion": 2,
            "mediaType": OCI_INDEX,
            "manifests": [entry.dump() for entry in entries],
        } | extra
        return put_json(store, index, OCI_INDEX)

    return factory


def with_platform(descriptor: Descriptor, **platform) -> Descriptor:
    platform = {"os": "linux", "architecture": "amd64"} | platform
    return Descriptor.model_validate(descriptor.dump() | {"platform": platform})


def as_attestation(descriptor: Descriptor, attests: str) -> Descriptor:
    return Descriptor.model_validate(
        descriptor.dump()
        | {
            "annotations": {
                REFERENCE_TYPE: ATTESTATION_MANIFEST,
                REFERENCE_DIGEST: attests,
            },
            "platform": {"os": "unknown", "architecture": "unknown"},
        }
    )


@pytest.fixture
def multi_platform(add_image, add_index):
    """An index with an amd64 image, an arm64 image and an attestation"""
    amd64 = with_platform(add_image(layers=(LAYER_A,)))
    arm64 = with_platform(
        add_image(architecture="arm64", layers=(LAYER_A, LAYER_B)),
        architecture="arm64",
        variant="v8",
    )
    attestation = as_attestation(
        add_image(os="unknown", architecture="unknown", layer_type=IN_TOTO_TYPE),
        attests=arm64.digest,
    )
    return add_index(amd64, arm64, attestation), (amd64, arm64, attestation)
