import json

import pytest

from conftest import (
    LAYER_A,
    LAYER_B,
    LAYER_TYPE,
    as_attestation,
    put_json,
    with_platform,
)
from manifest_tool.oci import (
    ContentNotFoundError,
    Descriptor,
    UnknownMediaTypeError,
    resolve,
)
from manifest_tool.oci.media_types import OCI_MANIFEST
from manifest_tool.render import (
    InvalidOptionsError,
    Palette,
    check_options,
    inspect,
    raw_document,
    render_raw,
)

NAME = "example.com/app:v1"
PLAIN = Palette(color=False)


def human(descriptor, store) -> list[str]:
    lines = []
    inspect(NAME, descriptor, store, palette=PLAIN, echo=lines.append)
    return lines


def test_check_options():
    check_options(raw=False, expand_config=False)
    check_options(raw=True, expand_config=False)
    check_options(raw=True, expand_config=True)
    with pytest.raises(InvalidOptionsError, match="only valid when used with --raw"):
        check_options(raw=False, expand_config=True)


def test_expand_config_without_raw_checked_first(store):
    missing = Descriptor(mediaType=OCI_MANIFEST, digest="sha256:" + "0" * 64, size=1)
    with pytest.raises(InvalidOptionsError):
        inspect(NAME, missing, store, expand_config=True, echo=print)


def test_palette():
    assert PLAIN.red(3) == "3"
    assert Palette().yellow("x") == "\x1b[33m\x1b[1mx\x1b[0m"


def test_human_image(store, add_image):
    descriptor = add_image()
    assert human(descriptor, store) == [
        f"Name: {NAME} (Type: {OCI_MANIFEST})",
        f"      Digest: {descriptor.digest}",
        f"        Size: {descriptor.size}",
        "          OS: linux",
        "        Arch: amd64",
        "    # Layers: 1",
        f"      layer 01: digest = {LAYER_A}",
    ]


def test_human_index(store, multi_platform):
    root, (amd64, arm64, attestation) = multi_platform
    lines = human(root, store)
    assert lines[:3] == [
        f"Name:   {NAME} (Type: application/vnd.oci.image.index.v1+json)",
        f"Digest: {root.digest}",
        " * Contains 3 manifest references (2 images, 1 attestation):",
    ]
    assert lines[3:] == [
        f"[1]     Type: {OCI_MANIFEST}",
        f"[1]   Digest: {amd64.digest}",
        f"[1]   Length: {amd64.size}",
        "[1] Platform:",
        "[1]    -      OS: linux",
        "[1]    -    Arch: amd64",
        "[1] # Layers: 1",
        f"     layer 01: digest = {LAYER_A}",
        f"                 type = {LAYER_TYPE}",
        "",
        f"[2]     Type: {OCI_MANIFEST}",
        f"[2]   Digest: {arm64.digest}",
        f"[2]   Length: {arm64.size}",
        "[2] Platform:",
        "[2]    -      OS: linux",
        "[2]    -    Arch: arm64",
        "[2]    - Variant: v8",
        "[2] # Layers: 2",
        f"     layer 01: digest = {LAYER_A}",
        f"                 type = {LAYER_TYPE}",
        f"     layer 02: digest = {LAYER_B}",
        f"                 type = {LAYER_TYPE}",
        "",
        f"[3]     Type: {OCI_MANIFEST} "
        "(vnd.docker.reference.type=attestation-manifest)",
        f"[3]   Digest: {attestation.digest}",
        f"[3]   Length: {attestation.size}",
        f"[3]       >>> Attestation for digest: {arm64.digest}",
        "",
    ]


def test_human_index_os_details(store, add_image, add_index):
    windows = with_platform(
        add_image(os="windows"),
        os="windows",
        **{"os.version": "10.0.17763.1879", "os.features": ["win32k"]},
    )
    lines = human(add_index(windows), store)
    assert " * Contains 1 manifest references (1 image, 0 attestations):" in lines
    assert "[1]    -      OS: windows" in lines
    assert "[1]    - OS Vers: 10.0.17763.1879" in lines
    assert "[1]    - OS Feat: win32k" in lines


def test_human_index_unknown_entry(store, add_image, add_index, caplog):
    unknown = Descriptor(
        mediaType="application/vnd.example.unknown", digest="sha256:" + "e" * 64, size=3
    )
    root = add_index(with_platform(add_image()), unknown)
    lines = human(root, store)
    assert lines[2] == " * Contains 2 manifest references (2 images, 0 attestations):"
    assert lines[-4:] == [
        "[2]     Type: application/vnd.example.unknown",
        f"[2]   Digest: {unknown.digest}",
        "[2]   Length: 3",
        "Unknown media type for further display: application/vnd.example.unknown",
    ]
    assert "Skipping entry 2" in caplog.text


def test_human_index_writes_header_before_failure(store, add_image, add_index):
    missing = with_platform(
        Descriptor(mediaType=OCI_MANIFEST, digest="sha256:" + "f" * 64, size=7)
    )
    root = add_index(with_platform(add_image()), missing)
    lines = []
    with pytest.raises(ContentNotFoundError):
        inspect(NAME, root, store, palette=PLAIN, echo=lines.append)
    assert lines == [
        f"Name:   {NAME} (Type: application/vnd.oci.image.index.v1+json)",
        f"Digest: {root.digest}",
    ]


def test_raw_image(store, add_image):
    descriptor = add_image(annotations={"org.opencontainers.image.version": "1"})
    output = render_raw(NAME, resolve(descriptor, store), store)
    assert output.startswith('{\n    "name": "example.com/app:v1",')
    document = json.loads(output)
    assert list(document)[:4] == ["name", "digest", "os", "architecture"]
    assert document["name"] == NAME
    assert document["digest"] == descriptor.digest
    assert document["os"] == "linux"
    assert document["architecture"] == "amd64"
    assert document["config"]["mediaType"] == "application/vnd.oci.image.config.v1+json"
    assert document["annotations"] == {"org.opencontainers.image.version": "1"}


def test_raw_image_round_trip(store, add_image):
    descriptor = add_image(layers=(LAYER_B, LAYER_A))
    _, stored = store.get(descriptor)
    original = json.loads(stored)
    lines = []
    inspect(NAME, descriptor, store, raw=True, echo=lines.append)
    assert len(lines) == 1
    document = json.loads(lines[0])
    assert document["schemaVersion"] == original["schemaVersion"]
    assert document["mediaType"] == original["mediaType"]
    assert [layer["digest"] for layer in document["layers"]] == [
        layer["digest"] for layer in original["layers"]
    ]


def test_raw_image_expand_config(store, add_image):
    subject = Descriptor(mediaType=OCI_MANIFEST, digest="sha256:" + "5" * 64, size=9)
    descriptor = add_image(subject=subject.dump())
    document = raw_document(NAME, resolve(descriptor, store), store, expand_config=True)
    assert list(document) == [
        "schemaVersion",
        "name",
        "digest",
        "os",
        "architecture",
        "mediaType",
        "config",
        "layers",
        "subject",
    ]
    assert document["config"] == {
        "os": "linux",
        "architecture": "amd64",
        "rootfs": {"type": "layers", "diff_ids": [LAYER_A]},
    }
    assert document["subject"]["digest"] == subject.digest


def test_raw_index(store, multi_platform):
    root, (amd64, arm64, attestation) = multi_platform
    document = raw_document(NAME, resolve(root, store), store)
    assert list(document) == [
        "name",
        "digest",
        "schemaVersion",
        "mediaType",
        "manifests",
    ]
    # attestations are not collapsed in raw output
    assert len(document["manifests"]) == 3
    expected = [
        json.loads(store.get(e)[1])["config"] for e in (amd64, arm64, attestation)
    ]
    assert [m["config"] for m in document["manifests"]] == expected


def test_raw_index_image_count_matches_human(store, add_image, add_index):
    root = add_index(
        with_platform(add_image()),
        with_platform(add_image(architecture="s390x"), architecture="s390x"),
    )
    document = raw_document(NAME, resolve(root, store), store)
    summary = human(root, store)[2]
    assert len(document["manifests"]) == 2
    assert summary == " * Contains 2 manifest references (2 images, 0 attestations):"


def test_raw_index_annotations(store, add_image, add_index):
    root = add_index(with_platform(add_image()), annotations={"a": "b"})
    document = raw_document(NAME, resolve(root, store), store)
    assert document["annotations"] == {"a": "b"}


def test_raw_index_unknown_entry_aborts(store, add_image, add_index):
    unknown = Descriptor(
        mediaType="application/vnd.example.unknown", digest="sha256:" + "e" * 64, size=3
    )
    root = add_index(with_platform(add_image()), unknown)
    lines = []
    with pytest.raises(UnknownMediaTypeError):
        inspect(NAME, root, store, raw=True, echo=lines.append)
    assert lines == []


def test_raw_index_nested_index_aborts(store, add_image, add_index):
    nested = add_index(with_platform(add_image()))
    root = add_index(nested)
    with pytest.raises(UnknownMediaTypeError):
        raw_document(NAME, resolve(root, store), store)


def test_raw_empty_index(store, add_index):
    document = raw_document(NAME, resolve(add_index(), store), store)
    assert document["manifests"] == []


def test_human_empty_manifest_fields(store):
    config = put_json(store, {}, "application/vnd.oci.image.config.v1+json")
    manifest = put_json(
        store, {"schemaVersion": 2, "config": config.dump()}, OCI_MANIFEST
    )
    lines = human(manifest, store)
    assert lines[3:] == ["          OS: ", "        Arch: ", "    # Layers: 0"]
    document = raw_document(NAME, resolve(manifest, store), store)
    assert "os" not in document
    assert "architecture" not in document
    assert document["layers"] == []


def test_human_attestation_without_digest(store, add_image, add_index):
    attestation = as_attestation(add_image(os="unknown"), attests="")
    annotations = {"vnd.docker.reference.type": "attestation-manifest"}
    entry = Descriptor.model_validate(attestation.dump() | {"annotations": annotations})
    lines = human(add_index(entry), store)
    assert lines[2] == " * Contains 1 manifest references (0 images, 1 attestation):"
    assert lines[-2] == "[1]       >>> Attestation for digest: "


def test_raw_keeps_embedded_data(store, add_image):
    layer = {
        "mediaType": LAYER_TYPE,
        "digest": LAYER_A,
        "size": 2,
        "data": "e30=",
    }
    descriptor = add_image(layers=())
    manifest = json.loads(store.get(descriptor)[1]) | {"layers": [layer]}
    descriptor = put_json(store, manifest, OCI_MANIFEST)
    document = raw_document(NAME, resolve(descriptor, store), store)
    assert document["layers"] == [layer]
    expanded = raw_document(NAME, resolve(descriptor, store), store, expand_config=True)
    assert expanded["layers"] == [layer]
