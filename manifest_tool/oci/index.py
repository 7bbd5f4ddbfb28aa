from pydantic import BaseModel

from manifest_tool.oci.descriptor import Descriptor


class Index(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/image-index.md
    """

    schemaVersion: int = 2
    mediaType: str | None = None
    artifactType: str | None = None
    manifests: list[Descriptor] = []
    subject: Descriptor | None = None
    annotations: dict[str, str] | None = None
