"""Project-wide constants (master defaults, timeouts, MIME types)."""

DEFAULT_MASTER_HOST: str = "localhost"
DEFAULT_MASTER_PORT: int = 9333

HTTP_TIMEOUT_SECONDS: float = 45.0
HTTP_MAX_CONNECTIONS: int = 512

# Lookup results older than this are re-fetched from the master
VOLUME_LOCATION_STALE_SECONDS: float = 10 * 60

# 0 disables chunking
DEFAULT_CHUNK_SIZE_BYTES: int = 0

CHUNK_MIME_TYPE: str = "application/octet-stream"
MANIFEST_MIME_TYPE: str = "application/json"
MANIFEST_QUERY_FLAG: str = "cm"
TIMESTAMP_QUERY_PARAM: str = "ts"

DOWNLOAD_BUFFER_BYTES: int = 64 * 1024
# Used when neither the response nor the URL names the file
DEFAULT_DOWNLOAD_NAME: str = "download"
