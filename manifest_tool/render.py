"""Human readable and raw JSON output for an inspected image"""
import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

import click

from manifest_tool.oci import (
    Descriptor,
    ManifestToolError,
    MemoryStore,
    Platform,
    ResolvedImage,
    ResolvedIndex,
    UnknownMediaTypeError,
    resolve,
    resolve_entry,
)
from manifest_tool.oci.attestation import (
    ATTESTATION_MANIFEST,
    REFERENCE_TYPE,
    classify_entry,
    count_entries,
    pluralize,
)

logger = logging.getLogger(__name__)

Echo = Callable[[str], None]


class InvalidOptionsError(ManifestToolError):
    """Raised when output options are combined in an unsupported way."""


def check_options(raw: bool, expand_config: bool):
    if expand_config and not raw:
        raise InvalidOptionsError(
            "the --expand-config flag is only valid when used with --raw"
        )


@dataclass(frozen=True, slots=True)
class Palette:
    """Colors used in the human readable output.

    With `color` disabled every method returns the plain value.
    """

    color: bool = True

    def _style(self, value, fg: str) -> str:
        if not self.color:
            return str(value)
        return click.style(str(value), fg=fg, bold=True)

    def yellow(self, value) -> str:
        return self._style(value, "yellow")

    def red(self, value) -> str:
        return self._style(value, "red")

    def blue(self, value) -> str:
        return self._style(value, "blue")

    def green(self, value) -> str:
        return self._style(value, "green")


def render_image(
    name: str, image: ResolvedImage, palette: Palette, echo: Echo = click.echo
):
    p = palette
    descriptor = image.descriptor
    echo(f"Name: {p.green(name)} (Type: {p.green(descriptor.mediaType)})")
    echo(f"      Digest: {p.yellow(descriptor.digest)}")
    echo(f"        Size: {p.blue(descriptor.size)}")
    echo(f"          OS: {p.green(image.config.os)}")
    echo(f"        Arch: {p.green(image.config.architecture)}")
    echo(f"    # Layers: {p.red(len(image.manifest.layers))}")
    for i, layer in enumerate(image.manifest.layers, start=1):
        echo(f"      layer {p.red(f'{i:02d}')}: digest = {p.yellow(layer.digest)}")


def _entry_lines(
    i: int, entry: Descriptor, store: MemoryStore, palette: Palette
) -> Iterator[str]:
    p = palette
    kind = classify_entry(entry)
    marker = ""
    if kind.is_attestation:
        marker = f" ({REFERENCE_TYPE}={ATTESTATION_MANIFEST})"
    yield f"[{i}]     Type: {p.green(entry.mediaType)}{p.green(marker)}"
    yield f"[{i}]   Digest: {p.yellow(entry.digest)}"
    yield f"[{i}]   Length: {p.blue(entry.size)}"

    try:
        manifest = resolve_entry(entry, store)
    except UnknownMediaTypeError as e:
        logger.warning("Skipping entry %d (%s): %s", i, entry.digest, e)
        yield f"Unknown media type for further display: {e.media_type}"
        return

    if kind.is_attestation:
        yield f"[{i}]       >>> Attestation for digest: {p.yellow(kind.attests)}"
        yield ""
        return

    platform = entry.platform or Platform(architecture="", os="")
    yield f"[{i}] Platform:"
    yield f"[{i}]    -      OS: {p.green(platform.os)}"
    if platform.osVersion:
        yield f"[{i}]    - OS Vers: {p.green(platform.osVersion)}"
    if platform.osFeatures:
        yield f"[{i}]    - OS Feat: {p.green(', '.join(platform.osFeatures))}"
    yield f"[{i}]    -    Arch: {p.green(platform.architecture)}"
    if platform.variant:
        yield f"[{i}]    - Variant: {p.green(platform.variant)}"
    yield f"[{i}] # Layers: {p.red(len(manifest.layers))}"
    for j, layer in enumerate(manifest.layers, start=1):
        yield f"     layer {p.red(f'{j:02d}')}: digest = {p.yellow(layer.digest)}"
        yield f"                 type = {p.green(layer.mediaType)}"
    yield ""


def render_index(
    name: str,
    resolved: ResolvedIndex,
    store: MemoryStore,
    palette: Palette,
    echo: Echo = click.echo,
):
    """Write the human readable view of an index

    The name and digest are written first, every entry is resolved
    before the summary and entry blocks are written.
    """
    p = palette
    descriptor = resolved.descriptor
    echo(f"Name:   {p.green(name)} (Type: {p.green(descriptor.mediaType)})")
    echo(f"Digest: {p.yellow(descriptor.digest)}")

    entries = resolved.index.manifests
    lines = [
        line
        for i, entry in enumerate(entries, start=1)
        for line in _entry_lines(i, entry, store, palette)
    ]
    counts = count_entries(entries)
    echo(
        f" * Contains {p.red(counts.total)} manifest references "
        f"({p.red(counts.images)} {pluralize(counts.images, 'image')}, "
        f"{p.red(counts.attestations)} "
        f"{pluralize(counts.attestations, 'attestation')}):"
    )
    for line in lines:
        echo(line)


def raw_document(
    name: str,
    resolved: ResolvedIndex | ResolvedImage,
    store: MemoryStore,
    expand_config: bool = False,
) -> dict:
    """Build the raw JSON document

    Every entry of an index has to resolve to a manifest,
    any failure aborts the whole document.
    """
    match resolved:
        case ResolvedIndex(descriptor, index):
            document = {
                "name": name,
                "digest": descriptor.digest,
                "schemaVersion": index.schemaVersion,
            }
            if index.mediaType:
                document["mediaType"] = index.mediaType
            document["manifests"] = [
                resolve_entry(entry, store).dump() for entry in index.manifests
            ]
            if index.annotations:
                document["annotations"] = index.annotations
        case ResolvedImage(descriptor, manifest, config) if not expand_config:
            document = {"name": name, "digest": descriptor.digest}
            if config.os:
                document["os"] = config.os
            if config.architecture:
                document["architecture"] = config.architecture
            document |= manifest.dump()
        case ResolvedImage(descriptor, manifest, config):
            document = {
                "schemaVersion": manifest.schemaVersion,
                "name": name,
                "digest": descriptor.digest,
            }
            if config.os:
                document["os"] = config.os
            if config.architecture:
                document["architecture"] = config.architecture
            if manifest.mediaType:
                document["mediaType"] = manifest.mediaType
            document["config"] = config.dump()
            document["layers"] = [layer.dump() for layer in manifest.layers]
            if manifest.subject is not None:
                document["subject"] = manifest.subject.dump()
            if manifest.annotations:
                document["annotations"] = manifest.annotations
    return document


def render_raw(
    name: str,
    resolved: ResolvedIndex | ResolvedImage,
    store: MemoryStore,
    expand_config: bool = False,
) -> str:
    return json.dumps(raw_document(name, resolved, store, expand_config), indent=4)


def inspect(
    name: str,
    descriptor: Descriptor,
    store: MemoryStore,
    raw: bool = False,
    expand_config: bool = False,
    palette: Palette = Palette(),
    echo: Echo = click.echo,
):
    """Resolve `descriptor` from `store` and write it in the requested format"""
    check_options(raw, expand_config)
    resolved = resolve(descriptor, store)
    if raw:
        echo(render_raw(name, resolved, store, expand_config=expand_config))
        return
    match resolved:
        case ResolvedIndex():
            render_index(name, resolved, store, palette, echo=echo)
        case ResolvedImage():
            render_image(name, resolved, palette, echo=echo)
