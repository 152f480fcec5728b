"""Client facade: uploads, batch uploads, replace, delete and download."""

import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple

import httpx

from common.constants import (
    DEFAULT_CHUNK_SIZE_BYTES,
    DEFAULT_DOWNLOAD_NAME,
    DOWNLOAD_BUFFER_BYTES,
    HTTP_MAX_CONNECTIONS,
    HTTP_TIMEOUT_SECONDS,
)
from common.logging_config import get_logger
from weedclient.exceptions import DeleteError, FidLookupError, WeedError
from weedclient.file_part import FilePart, file_parts_from_paths
from weedclient.http_client import HttpClient, make_url
from weedclient.location_cache import VolumeLocationCache
from weedclient.manifest import ChunkManifest
from weedclient.master_client import MasterClient
from weedclient.schemas import SubmitResult
from weedclient.uploader import ChunkUploader

logger = get_logger(__name__)


def local_file_name(name: str) -> str:
    """Last path component of a remote name, or "" if none is usable."""
    base = os.path.basename(name.replace('\\', '/'))
    if base in ('.', '..'):
        return ""
    return base


class Seaweed:
    """Entry point for storing and fetching files through one master."""

    def __init__(
        self,
        master: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE_BYTES,
        http: Optional[HttpClient] = None,
        cache: Optional[VolumeLocationCache] = None,
        use_public_url: bool = True,
    ):
        """
        Initialize the client.

        Args:
            master: host:port of the master
            chunk_size: Files larger than this are chunked; 0 disables chunking
            http: Transport (a pooled one with the default timeout is created if omitted)
            cache: Volume location cache shared by lookups
            use_public_url: Write to publicUrl rather than url of assigned nodes
        """
        self.master = master
        self.http = http or HttpClient(HTTP_TIMEOUT_SECONDS, HTTP_MAX_CONNECTIONS)
        self.master_client = MasterClient(master, self.http, cache, use_public_url)
        self.uploader = ChunkUploader(self.master_client, self.http, chunk_size)
        logger.info(f"Initialized Seaweed client [master={master}, chunk_size={chunk_size}]")

    @property
    def chunk_size(self) -> int:
        return self.uploader.chunk_size

    def assign(self, count: int = 1, collection: str = "", ttl: str = ""):
        return self.master_client.assign(count, collection, ttl)

    def lookup(self, fid: str, collection: str = "", cache_allowed: bool = True) -> str:
        return self.master_client.lookup(fid, collection, cache_allowed)

    def upload_file_part(self, fp: FilePart) -> SubmitResult:
        return self.uploader.upload(fp)

    def upload_file(self, file_path: str, collection: str = "", ttl: str = "") -> SubmitResult:
        fp = FilePart.from_path(file_path)
        fp.collection, fp.ttl = collection, ttl
        return self.upload_file_part(fp)

    def upload_via_reader(
        self,
        reader: BinaryIO,
        size: int,
        filename: str,
        collection: str = "",
        ttl: str = "",
    ) -> SubmitResult:
        fp = FilePart.from_reader(reader, size, filename)
        fp.collection, fp.ttl = collection, ttl
        return self.upload_file_part(fp)

    def upload_via_reader_with_fid(
        self,
        reader: BinaryIO,
        size: int,
        filename: str,
        server: str,
        fid: str,
    ) -> SubmitResult:
        """Upload to a fid the caller already holds (server may be empty to force a lookup)."""
        fp = FilePart.from_reader(reader, size, filename)
        fp.server, fp.fid = server, fid
        return self.upload_file_part(fp)

    def replace_file_part(self, fp: FilePart, delete_first: bool = False) -> SubmitResult:
        """
        Re-upload a part under its existing fid.

        When `delete_first` is set the old object is deleted before anything
        else; a failed delete is logged and the upload proceeds anyway.
        """
        if delete_first and fp.fid:
            try:
                self.delete_file(fp.fid, fp.collection)
            except (WeedError, httpx.HTTPError) as e:
                logger.warning(f"Delete before replace failed for {fp.fid}, uploading anyway: {e}")
        return self.upload_file_part(fp)

    def replace_file(self, fid: str, file_path: str, delete_first: bool = False) -> SubmitResult:
        fp = FilePart.from_path(file_path)
        fp.fid = fid
        return self.replace_file_part(fp, delete_first)

    def batch_upload_file_parts(
        self,
        files: List[FilePart],
        collection: str = "",
        ttl: str = "",
        max_workers: int = 1,
    ) -> List[SubmitResult]:
        """
        Upload several parts with fids from a single assignment.

        Part 0 gets the assigned fid and part i gets "<fid>_<i>". Each part
        succeeds or fails on its own; failures are reported in that part's
        result and never stop the rest of the batch.

        Args:
            files: Parts to upload (consumed and closed)
            collection: Collection for the whole batch
            ttl: Time-to-live for the whole batch
            max_workers: Upload this many parts concurrently

        Returns:
            One SubmitResult per part, in input order
        """
        results = [
            SubmitResult(file_name=fp.file_name, file_base=fp.base_name, mime_type=fp.mime_type, ext=fp.ext)
            for fp in files
        ]
        if not files:
            return results

        try:
            assigned = self.master_client.assign(len(files), collection, ttl)
        except (WeedError, httpx.HTTPError) as e:
            logger.error(f"Batch assign of {len(files)} file(s) failed: {e}")
            for fp, result in zip(files, results):
                fp.close()
                result.error = str(e)
            return results

        server = self.master_client.node_of(assigned)
        for index, fp in enumerate(files):
            fp.fid = assigned.fid if index == 0 else f"{assigned.fid}_{index}"
            fp.server = server
            fp.auth = assigned.auth
            fp.collection = collection
            fp.ttl = ttl

        def upload_one(index: int) -> None:
            fp = files[index]
            try:
                results[index] = self.upload_file_part(fp)
            except (WeedError, httpx.HTTPError, OSError) as e:
                logger.warning(f"Batch item {index} ({fp.file_name}) failed: {e}")
                results[index].size = fp.file_size
                results[index].error = str(e)

        if max_workers > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                list(executor.map(upload_one, range(len(files))))
        else:
            for index in range(len(files)):
                upload_one(index)

        failed = sum(1 for result in results if not result.succeeded)
        logger.info(f"Batch upload finished: {len(files) - failed} succeeded, {failed} failed")
        return results

    def batch_upload_files(
        self,
        file_paths: List[str],
        collection: str = "",
        ttl: str = "",
        max_workers: int = 1,
    ) -> List[SubmitResult]:
        """
        Raises:
            OSError: If any path cannot be opened (nothing is assigned then)
        """
        return self.batch_upload_file_parts(file_parts_from_paths(file_paths), collection, ttl, max_workers)

    def delete_file(self, fid: str, collection: str = "") -> None:
        """
        Delete a fid from the cluster.

        Raises:
            FidLookupError: If the fid cannot be located
            DeleteError: If the volume server rejects the delete
        """
        try:
            self.uploader.delete_file(fid, collection)
        except FidLookupError as e:
            raise FidLookupError(f"Failed to lookup {fid}: {e}")
        except DeleteError as e:
            raise DeleteError(f"Failed to delete {fid}: {e}")
        logger.info(f"Deleted {fid}")

    def delete_chunks(self, manifest: ChunkManifest, collection: str = "") -> List[str]:
        """Best-effort delete of every chunk in a manifest; returns fids left behind."""
        return self.uploader.delete_fids(manifest.fids(), collection)

    def weed_url(self, fid: str) -> str:
        return make_url(self.master, fid)

    def download_file(self, url: str, directory: str) -> Tuple[str, int]:
        """
        Stream a URL to a file inside `directory`.

        The directory is created if missing. The file is named after the last
        path component of the response's advertised filename, else the URL's
        base name, else DEFAULT_DOWNLOAD_NAME; it never lands outside
        `directory`.

        Returns:
            Tuple of (file path, bytes written)
        """
        with self.http.download(url) as (advertised, response):
            Path(directory).mkdir(parents=True, exist_ok=True)
            filename = (
                local_file_name(advertised)
                or local_file_name(httpx.URL(url).path)
                or DEFAULT_DOWNLOAD_NAME
            )
            file_path = os.path.join(directory, filename)

            written = 0
            with open(file_path, 'wb') as f:
                for data in response.iter_bytes(chunk_size=DOWNLOAD_BUFFER_BYTES):
                    f.write(data)
                    written += len(data)

        logger.info(f"{written} bytes downloaded {file_path}")
        return file_path, written

    def download_file_by_fid(self, fid: str, directory: str) -> Tuple[str, str, int]:
        """
        Download a fid through the master, which redirects to its node.

        Returns:
            Tuple of (url, file path, bytes written)
        """
        url = self.weed_url(fid)
        file_path, written = self.download_file(url, directory)
        return url, file_path, written

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> 'Seaweed':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
