from pydantic import BaseModel, ConfigDict, field_validator


class ImageConfig(BaseModel):
    """Image configuration, only os and architecture are interpreted.

    Every other field of the config blob is kept as-is.

    ref: https://github.com/opencontainers/image-spec/blob/main/config.md
    """

    model_config = ConfigDict(extra="allow")

    os: str = ""
    architecture: str = ""

    @field_validator("os", "architecture", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return "" if value is None else value

    def dump(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
