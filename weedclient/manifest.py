"""Chunk manifest model and its JSON wire codec."""

from typing import List

from pydantic import BaseModel, ConfigDict, ValidationError

from weedclient.exceptions import ManifestError


class ChunkInfo(BaseModel):
    """Placement of one chunk: byte offset in the file, bytes stored, and fid."""
    model_config = ConfigDict(frozen=True)

    fid: str
    offset: int
    size: int


class ChunkManifest(BaseModel):
    """
    Description of a chunked file, stored at the file's own fid with cm=true.

    Chunks are ordered by offset and, once complete, cover [0, size) with no
    gaps or overlaps.
    """
    name: str = ""
    mime: str = ""
    size: int = 0
    chunks: List[ChunkInfo] = []

    def covered_bytes(self) -> int:
        return sum(chunk.size for chunk in self.chunks)

    def is_complete(self) -> bool:
        """True when the chunks tile [0, size) exactly."""
        position = 0
        for chunk in sorted(self.chunks, key=lambda c: c.offset):
            if chunk.offset != position or chunk.size <= 0:
                return False
            position += chunk.size
        return position == self.size

    def fids(self) -> List[str]:
        return [chunk.fid for chunk in self.chunks]


def chunk_count(size: int, chunk_size: int) -> int:
    """
    Number of chunks needed for `size` bytes: exact ceiling division.

    A size that is an exact multiple of chunk_size yields size // chunk_size
    chunks; no trailing empty chunk is allocated.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return -(-size // chunk_size)


def encode_manifest(manifest: ChunkManifest) -> bytes:
    return manifest.model_dump_json().encode('utf-8')


def decode_manifest(data: bytes) -> ChunkManifest:
    """
    Parse a manifest body.

    Raises:
        ManifestError: If the body is not a valid manifest
    """
    try:
        return ChunkManifest.model_validate_json(data)
    except ValidationError as e:
        raise ManifestError(f"Invalid chunk manifest: {e}")
