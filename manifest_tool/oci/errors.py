class ManifestToolError(Exception):
    """Base class for errors raised while inspecting an image."""


class ContentNotFoundError(ManifestToolError):
    """Raised when a digest is not present in the content store."""


class DecodeError(ManifestToolError):
    """Raised when fetched content can not be decoded."""


class UnknownMediaTypeError(ManifestToolError):
    """Raised when a descriptor has a media type we can not display."""

    def __init__(self, message: str, media_type: str):
        super().__init__(message)
        self.media_type = media_type


class ResolutionError(ManifestToolError):
    """Raised when a reference can not be resolved against the registry."""


class DigestMismatchError(ResolutionError):
    """Raised when fetched content does not match the expected digest."""
