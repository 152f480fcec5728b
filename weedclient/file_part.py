"""File parts: a byte source plus the metadata needed to store it."""

import io
import mimetypes
import os
import time
from dataclasses import dataclass
from typing import BinaryIO, List


def guess_mime_type(ext: str) -> str:
    """Return the MIME type for an extension such as ".txt", or ""."""
    if not ext:
        return ""
    return mimetypes.guess_type(f"file{ext.lower()}")[0] or ""


@dataclass
class FilePart:
    """
    A byte source to be stored under one fid.

    `file_size` must equal the number of bytes `reader` yields; chunk
    boundaries are computed from it. A part is consumed exactly once.
    """
    reader: BinaryIO
    file_size: int
    file_name: str = ""
    is_gzipped: bool = False
    mime_type: str = ""
    ext: str = ""
    mod_time: int = 0
    collection: str = ""
    ttl: str = ""
    server: str = ""
    fid: str = ""
    auth: str = ""

    @property
    def base_name(self) -> str:
        return os.path.basename(self.file_name)

    @classmethod
    def from_path(cls, path: str) -> "FilePart":
        """
        Open a local file as a part.

        A ".gz" file is flagged as already gzipped; its name, extension and
        MIME type then describe the uncompressed content.

        Raises:
            OSError: If the file cannot be opened or stat'ed
        """
        handle = open(path, 'rb')
        try:
            stat = os.fstat(handle.fileno())
        except OSError:
            handle.close()
            raise

        file_name = path
        is_gzipped = path.lower().endswith('.gz')
        if is_gzipped:
            file_name = path[:-3]

        ext = os.path.splitext(file_name)[1].lower()
        return cls(
            reader=handle,
            file_size=stat.st_size,
            file_name=file_name,
            is_gzipped=is_gzipped,
            mime_type=guess_mime_type(ext),
            ext=ext,
            mod_time=int(stat.st_mtime),
        )

    @classmethod
    def from_reader(cls, reader: BinaryIO, size: int, filename: str) -> "FilePart":
        ext = os.path.splitext(filename)[1].lower()
        return cls(
            reader=reader,
            file_size=size,
            file_name=filename,
            mime_type=guess_mime_type(ext),
            ext=ext,
        )

    @classmethod
    def from_string(cls, source: str, filename: str) -> "FilePart":
        data = source.encode('utf-8')
        part = cls.from_reader(io.BytesIO(data), len(data), filename)
        part.mod_time = int(time.time())
        return part

    def close(self) -> None:
        close = getattr(self.reader, 'close', None)
        if callable(close):
            close()


def file_parts_from_paths(paths: List[str]) -> List[FilePart]:
    """
    Open every path as a part.

    Raises:
        OSError: On the first path that cannot be opened; parts opened so far
            are closed
    """
    parts: List[FilePart] = []
    try:
        for path in paths:
            parts.append(FilePart.from_path(path))
    except OSError:
        for part in parts:
            part.close()
        raise
    return parts


class BoundedReader:
    """
    Forward-only view over at most `limit` bytes of a shared stream.

    Chunk boundaries come from how much this reader yields, never from
    seeking, so non-seekable sources work. Must not grow a seek(): httpx
    rewinds any upload body that has one.
    """

    def __init__(self, source: BinaryIO, limit: int):
        self._source = source
        self._remaining = limit
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        if self._remaining <= 0:
            return b""
        if size is None or size < 0 or size > self._remaining:
            size = self._remaining
        data = self._source.read(size)
        if not data:
            self._remaining = 0
            return b""
        self._remaining -= len(data)
        self.bytes_read += len(data)
        return data

