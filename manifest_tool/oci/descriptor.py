from pydantic import BaseModel, ConfigDict, Field


class Platform(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/image-index.md
    """

    model_config = ConfigDict(populate_by_name=True)

    architecture: str
    os: str
    osVersion: str | None = Field(default=None, alias="os.version")
    osFeatures: list[str] | None = Field(default=None, alias="os.features")
    variant: str | None = None


class Descriptor(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/descriptor.md
    """

    mediaType: str
    digest: str
    size: int
    urls: list[str] | None = None
    annotations: dict[str, str] | None = None
    data: str | None = None
    platform: Platform | None = None
    artifactType: str | None = None

    def dump(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


EMPTY_DESCRIPTOR = Descriptor(mediaType="", digest="", size=0)
