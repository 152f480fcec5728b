"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class UploadCommand:
    """Upload one or more files (several files go through one batch assignment)."""

    file_list: tuple[str, ...]
    collection: str | None = None
    ttl: str | None = None
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class ReplaceCommand:
    """Replace the content stored at a fid."""

    fid: str
    file_path: str
    delete_first: bool = False
    command: Literal["replace"] = "replace"


@dataclass(frozen=True)
class DeleteCommand:
    """Delete a fid."""

    fid: str
    command: Literal["delete"] = "delete"


@dataclass(frozen=True)
class DownloadCommand:
    """Download a fid or URL into a directory."""

    target: str
    directory: str = "."
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class LookupCommand:
    """Resolve a fid to its volume server."""

    fid: str
    command: Literal["lookup"] = "lookup"


@dataclass(frozen=True)
class UrlCommand:
    """Print the master URL for a fid."""

    fid: str
    command: Literal["url"] = "url"


@dataclass(frozen=True)
class ChunkSizeCommand:
    """Show or persist the chunk threshold (None shows the current value)."""

    size: int | None = None
    command: Literal["chunk-size"] = "chunk-size"


CommandRequest = (
    UploadCommand
    | ReplaceCommand
    | DeleteCommand
    | DownloadCommand
    | LookupCommand
    | UrlCommand
    | ChunkSizeCommand
)
