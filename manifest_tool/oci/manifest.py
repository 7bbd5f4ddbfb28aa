from pydantic import BaseModel

from manifest_tool.oci.descriptor import Descriptor


class Manifest(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/manifest.md
    """

    schemaVersion: int = 2
    mediaType: str | None = None
    artifactType: str | None = None
    config: Descriptor
    layers: list[Descriptor] = []
    subject: Descriptor | None = None
    annotations: dict[str, str] | None = None

    def dump(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
