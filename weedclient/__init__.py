"""Client for storing files, chunked when large, on a fid-addressed blob cluster."""

from weedclient.file_part import FilePart
from weedclient.location_cache import VolumeLocationCache
from weedclient.manifest import ChunkInfo, ChunkManifest
from weedclient.schemas import AssignResult, SubmitResult
from weedclient.seaweed import Seaweed

__all__ = [
    "AssignResult",
    "ChunkInfo",
    "ChunkManifest",
    "FilePart",
    "Seaweed",
    "SubmitResult",
    "VolumeLocationCache",
]
