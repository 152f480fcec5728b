"""HTTP transport for master and volume server calls."""

import re
from contextlib import contextmanager
from typing import BinaryIO, Dict, Iterator, Optional, Tuple
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from common.constants import HTTP_MAX_CONNECTIONS, HTTP_TIMEOUT_SECONDS
from common.logging_config import get_logger
from weedclient.exceptions import DeleteError, DownloadError, UploadError
from weedclient.schemas import UploadResult

logger = get_logger(__name__)

_DISPOSITION_FILENAME = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)

# A missing object is already deleted
_DELETE_OK_STATUSES = (200, 202, 204, 404)


def with_scheme(server: str) -> str:
    """Prefix a bare host:port with http:// and drop any trailing slash."""
    if not server.startswith(('http://', 'https://')):
        server = f"http://{server}"
    return server.rstrip('/')


def make_url(server: str, fid: str, params: Optional[Dict[str, str]] = None) -> str:
    """
    Build the volume server URL for a fid.

    Args:
        server: host:port (or full base URL) of the volume server
        fid: File id, optionally with an extension suffix
        params: Optional query parameters (e.g. ts, cm)

    Returns:
        URL string such as "http://10.0.0.5:8080/3,01637037d6?cm=true"
    """
    url = f"{with_scheme(server)}/{fid}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def filename_from_disposition(header: str) -> str:
    """Extract the advertised filename from a Content-Disposition header."""
    if not header:
        return ""
    match = _DISPOSITION_FILENAME.search(header)
    return match.group(1).strip() if match else ""


class HttpClient:
    """Thin wrapper over one pooled httpx.Client."""

    def __init__(
        self,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        max_connections: int = HTTP_MAX_CONNECTIONS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the transport.

        Args:
            timeout: Fixed per-request timeout in seconds
            max_connections: Connection pool size
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.session = httpx.Client(
            timeout=timeout,
            limits=httpx.Limits(max_connections=max_connections),
            follow_redirects=True,
            transport=transport,
        )
        logger.debug(f"Initialized HttpClient [timeout={timeout}s, max_connections={max_connections}]")

    def post_form(self, host: str, path: str, data: Dict[str, str]) -> httpx.Response:
        url = f"{with_scheme(host)}{path}"
        logger.debug(f"POST {url} data={data}")
        return self.session.post(url, data=data)

    def get(self, host: str, path: str, params: Optional[Dict[str, str]] = None) -> httpx.Response:
        url = f"{with_scheme(host)}{path}"
        logger.debug(f"GET {url} params={params}")
        return self.session.get(url, params=params)

    def upload(
        self,
        url: str,
        filename: str,
        reader: BinaryIO,
        is_gzipped: bool = False,
        mime_type: str = "",
        jwt: str = "",
    ) -> UploadResult:
        """
        Upload one body as a multipart PUT.

        Args:
            url: Target volume server URL (with fid and query)
            filename: Name sent with the multipart part
            reader: Binary source; read until exhausted
            is_gzipped: Mark the part as already gzip-encoded
            mime_type: Content type of the part (guessed from filename if empty)
            jwt: Optional write token issued by the master

        Returns:
            Parsed volume server response

        Raises:
            UploadError: If the server rejects the write
            httpx.HTTPError: On transport failures
        """
        part_headers = {'Content-Encoding': 'gzip'} if is_gzipped else {}
        files = {'file': (filename, reader, mime_type or None, part_headers)}
        headers = {'Authorization': f'BEARER {jwt}'} if jwt else None

        logger.debug(f"Uploading {filename} -> {url} [mime={mime_type}, gzipped={is_gzipped}]")
        response = self.session.put(url, files=files, headers=headers)

        try:
            result = UploadResult.model_validate(response.json())
        except (ValueError, ValidationError):
            result = UploadResult(error=response.text if response.is_error else "")

        if response.is_error:
            raise UploadError(
                f"Upload to {url} failed: status={response.status_code} {result.error or response.reason_phrase}"
            )
        if result.error:
            raise UploadError(f"Upload to {url} failed: {result.error}")

        return result

    def delete(self, url: str) -> None:
        logger.debug(f"DELETE {url}")
        response = self.session.delete(url)
        if response.status_code not in _DELETE_OK_STATUSES:
            raise DeleteError(f"Delete {url} failed: status={response.status_code} {response.text}")

    @contextmanager
    def download(self, url: str) -> Iterator[Tuple[str, httpx.Response]]:
        """
        Stream a GET response.

        Yields:
            Tuple of (advertised filename or "", streaming response)

        Raises:
            DownloadError: If the server answers with an error status
        """
        with self.session.stream('GET', url) as response:
            if response.is_error:
                response.read()
                raise DownloadError(f"Download {url} failed: status={response.status_code}")
            filename = filename_from_disposition(response.headers.get('Content-Disposition', ''))
            yield filename, response

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
