"""Upload orchestration: plain single-fid writes and chunked writes with rollback."""

import io
from enum import Enum
from typing import List, Optional

from common.constants import (
    CHUNK_MIME_TYPE,
    MANIFEST_MIME_TYPE,
    MANIFEST_QUERY_FLAG,
    TIMESTAMP_QUERY_PARAM,
)
from common.logging_config import get_logger
from weedclient.exceptions import ShortReadError
from weedclient.file_part import BoundedReader, FilePart
from weedclient.http_client import HttpClient, make_url
from weedclient.manifest import ChunkInfo, ChunkManifest, chunk_count, encode_manifest
from weedclient.master_client import MasterClient
from weedclient.schemas import SubmitResult

logger = get_logger(__name__)


class UploadStage(str, Enum):
    """Stages of one chunked upload."""
    START = "start"
    ASSIGNING = "assigning"
    UPLOADING = "uploading"
    MANIFEST_BUILD = "manifest_build"
    MANIFEST_UPLOAD = "manifest_upload"
    DONE = "done"
    FAILED = "failed"


class ChunkedUpload:
    """
    State of a single chunked upload.

    Chunks are assigned and written strictly in order from one forward-only
    stream. The manifest is written only after every chunk succeeded; on any
    failure every chunk fid this upload created is deleted and the original
    error is re-raised.
    """

    def __init__(self, uploader: "ChunkUploader", fp: FilePart):
        self.uploader = uploader
        self.fp = fp
        self.stage = UploadStage.START
        self.chunk_index: Optional[int] = None
        self.chunks: List[ChunkInfo] = []
        # every fid a chunk write was attempted on, including a failed one
        self.created_fids: List[str] = []
        self.manifest: Optional[ChunkManifest] = None

    def run(self) -> ChunkManifest:
        fp = self.fp
        chunk_size = self.uploader.chunk_size
        total_chunks = chunk_count(fp.file_size, chunk_size)
        logger.info(
            f"Chunked upload of {fp.base_name} [fid={fp.fid}, size={fp.file_size}, "
            f"chunks={total_chunks}, chunk_size={chunk_size}]"
        )

        try:
            for index in range(total_chunks):
                self._upload_chunk(index, total_chunks)

            self.stage = UploadStage.MANIFEST_BUILD
            self.chunk_index = None
            manifest = ChunkManifest(
                name=fp.base_name,
                size=fp.file_size,
                mime=fp.mime_type,
                chunks=self.chunks,
            )
            if not manifest.is_complete():
                raise ShortReadError(
                    f"Chunks of {fp.base_name} cover {manifest.covered_bytes()} of {fp.file_size} bytes"
                )
            self.manifest = manifest

            self.stage = UploadStage.MANIFEST_UPLOAD
            self._upload_manifest(manifest)
        except Exception as e:
            where = self.stage.value
            if self.chunk_index is not None:
                where = f"{where} chunk {self.chunk_index + 1}"
            self.stage = UploadStage.FAILED
            logger.error(f"Chunked upload of {fp.base_name} failed at {where}: {e}")
            self.rollback()
            raise

        self.stage = UploadStage.DONE
        return manifest

    def _upload_chunk(self, index: int, total_chunks: int) -> None:
        fp = self.fp
        chunk_size = self.uploader.chunk_size
        master = self.uploader.master
        self.chunk_index = index

        self.stage = UploadStage.ASSIGNING
        assigned = master.assign(1, fp.collection, fp.ttl)

        self.stage = UploadStage.UPLOADING
        label = f"{fp.base_name}-{index + 1}"
        reader = BoundedReader(fp.reader, chunk_size)
        self.created_fids.append(assigned.fid)
        self.uploader.http.upload(
            make_url(master.node_of(assigned), assigned.fid),
            label,
            reader,
            is_gzipped=False,
            mime_type=CHUNK_MIME_TYPE,
            jwt=assigned.auth,
        )

        offset = index * chunk_size
        expected = min(chunk_size, fp.file_size - offset)
        if reader.bytes_read != expected:
            raise ShortReadError(
                f"Source of {fp.base_name} yielded {reader.bytes_read} bytes for chunk {index + 1}, "
                f"expected {expected}"
            )

        self.chunks.append(ChunkInfo(fid=assigned.fid, offset=offset, size=reader.bytes_read))
        logger.debug(f"Wrote chunk {index + 1}/{total_chunks} of {fp.base_name} [fid={assigned.fid}]")

    def _upload_manifest(self, manifest: ChunkManifest) -> None:
        fp = self.fp
        params = {}
        if fp.mod_time:
            params[TIMESTAMP_QUERY_PARAM] = str(fp.mod_time)
        params[MANIFEST_QUERY_FLAG] = 'true'

        self.uploader.http.upload(
            make_url(fp.server, fp.fid, params),
            manifest.name,
            io.BytesIO(encode_manifest(manifest)),
            is_gzipped=False,
            mime_type=MANIFEST_MIME_TYPE,
            jwt=fp.auth,
        )

    def rollback(self) -> List[str]:
        """
        Delete every chunk fid this upload created.

        Best-effort: deletion errors are logged and returned, never raised.

        Returns:
            Fids that could not be deleted
        """
        if not self.created_fids:
            return []

        logger.info(f"Cleaning up {len(self.created_fids)} orphaned chunk(s) of {self.fp.base_name}")
        failed = self.uploader.delete_fids(self.created_fids, self.fp.collection)
        if failed:
            logger.error(f"Rollback of {self.fp.base_name} left {len(failed)} chunk(s) behind: {failed}")
        return failed


class ChunkUploader:
    """Decides between plain and chunked upload and drives either one."""

    def __init__(self, master: MasterClient, http: HttpClient, chunk_size: int = 0):
        """
        Initialize the uploader.

        Args:
            master: Assignment/lookup client
            http: Shared transport
            chunk_size: Chunk threshold in bytes; 0 disables chunking
        """
        self.master = master
        self.http = http
        self.chunk_size = chunk_size

    def should_chunk(self, fp: FilePart) -> bool:
        return self.chunk_size > 0 and fp.file_size > self.chunk_size

    def upload(self, fp: FilePart) -> SubmitResult:
        """
        Store a part under its fid, assigning one first if it has none.

        The part's reader is closed when this returns or raises.

        Raises:
            WeedError: On assignment, lookup, short-read or server rejection
            httpx.HTTPError: On transport failures
        """
        try:
            self._resolve_target(fp)
            if self.should_chunk(fp):
                ChunkedUpload(self, fp).run()
            else:
                self._upload_plain(fp)
        finally:
            fp.close()

        logger.info(f"{fp.file_size} bytes uploaded {fp.file_name} [fid={fp.fid}]")
        return SubmitResult(
            file_name=fp.file_name,
            file_base=fp.base_name,
            file_url=make_url(fp.server, fp.fid + fp.ext),
            fid=fp.fid + fp.ext,
            size=fp.file_size,
            mime_type=fp.mime_type,
            ext=fp.ext,
        )

    def _resolve_target(self, fp: FilePart) -> None:
        if not fp.fid:
            assigned = self.master.assign(1, fp.collection, fp.ttl)
            fp.server, fp.fid, fp.auth = self.master.node_of(assigned), assigned.fid, assigned.auth
        if not fp.server:
            fp.server = self.master.lookup(fp.fid, fp.collection, cache_allowed=False)

    def _upload_plain(self, fp: FilePart) -> None:
        params = {TIMESTAMP_QUERY_PARAM: str(fp.mod_time)} if fp.mod_time else None
        self.http.upload(
            make_url(fp.server, fp.fid, params),
            fp.base_name,
            fp.reader,
            is_gzipped=fp.is_gzipped,
            mime_type=fp.mime_type,
            jwt=fp.auth,
        )

    def delete_file(self, fid: str, collection: str = "") -> None:
        """
        Delete one fid from whichever node owns it.

        Raises:
            FidLookupError: If the fid cannot be located
            DeleteError: If the node rejects the delete
        """
        url = self.master.lookup_file_url(fid, collection, cache_allowed=False)
        self.http.delete(url)

    def delete_fids(self, fids: List[str], collection: str = "") -> List[str]:
        """
        Best-effort delete of several fids.

        Returns:
            Fids whose deletion failed (each failure is logged)
        """
        failed = []
        for fid in fids:
            try:
                self.delete_file(fid, collection)
                logger.info(f"Deleted chunk {fid}")
            except Exception as e:
                logger.warning(f"Failed to delete chunk {fid}: {e}")
                failed.append(fid)
        return failed
