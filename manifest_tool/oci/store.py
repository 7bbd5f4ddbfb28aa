import hashlib
import logging

from manifest_tool.oci.descriptor import Descriptor
from manifest_tool.oci.errors import ContentNotFoundError

logger = logging.getLogger(__name__)


def compute_digest(data: bytes, algorithm: str = "sha256") -> str:
    return f"{algorithm}:{hashlib.new(algorithm, data).hexdigest()}"


class MemoryStore:
    """In-memory content addressable store.

    Content is keyed by digest and never replaced once written.
    The store lives for a single command, there is no eviction.
    """

    def __init__(self):
        self._content: dict[str, tuple[str, bytes]] = {}

    def __contains__(self, digest: str) -> bool:
        return digest in self._content

    def __len__(self) -> int:
        return len(self._content)

    def put(self, data: bytes, media_type: str, algorithm: str = "sha256") -> str:
        """Store `data` and return its digest"""
        digest = compute_digest(data, algorithm)
        if digest in self._content:
            logger.debug("Content already stored: %s", digest)
            return digest
        self._content[digest] = (media_type, data)
        logger.debug("Stored %s (%s, %d bytes)", digest, media_type, len(data))
        return digest

    def get(self, descriptor: Descriptor) -> tuple[str, bytes]:
        try:
            return self._content[descriptor.digest]
        except KeyError:
            raise ContentNotFoundError(
                f"content not found in store: {descriptor.digest or '<empty digest>'}"
            ) from None
