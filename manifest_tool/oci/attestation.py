"""Recognize attestation manifests in an image index.

ref: https://docs.docker.com/build/metadata/attestations/attestation-storage/
"""
from collections.abc import Iterable
from dataclasses import dataclass

from manifest_tool.oci.descriptor import Descriptor

REFERENCE_TYPE = "vnd.docker.reference.type"
REFERENCE_DIGEST = "vnd.docker.reference.digest"
ATTESTATION_MANIFEST = "attestation-manifest"


@dataclass(frozen=True, slots=True)
class EntryClass:
    is_attestation: bool
    attests: str | None = None


@dataclass(frozen=True, slots=True)
class EntryCounts:
    total: int
    images: int
    attestations: int


def classify_entry(descriptor: Descriptor) -> EntryClass:
    annotations = descriptor.annotations or {}
    if annotations.get(REFERENCE_TYPE) == ATTESTATION_MANIFEST:
        return EntryClass(True, annotations.get(REFERENCE_DIGEST, ""))
    return EntryClass(False)


def count_entries(manifests: Iterable[Descriptor]) -> EntryCounts:
    total = attestations = 0
    for descriptor in manifests:
        total += 1
        if classify_entry(descriptor).is_attestation:
            attestations += 1
    return EntryCounts(total, total - attestations, attestations)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    if count == 1:
        return singular
    return plural if plural is not None else f"{singular}s"
