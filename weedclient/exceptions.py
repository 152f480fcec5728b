"""Custom exception classes for the weed client."""


class WeedError(Exception):
    """
    Base exception class for all client-side storage errors.
    """
    pass


class AssignError(WeedError):
    """
    Raised when the master returns no usable fid (count <= 0 or bad JSON).
    """
    pass


class FidLookupError(WeedError):
    """
    Raised when the master cannot resolve a fid to a volume server.
    """
    pass


class UploadError(WeedError):
    """
    Raised when a volume server rejects an upload.
    """
    pass


class ShortReadError(UploadError):
    """
    Raised when the source stream yields fewer bytes than its declared size.
    """
    pass


class DeleteError(WeedError):
    """
    Raised when a volume server rejects a delete.
    """
    pass


class DownloadError(WeedError):
    """
    Raised when a download request does not succeed.
    """
    pass


class ManifestError(WeedError):
    """
    Raised when a chunk manifest cannot be decoded or is incomplete.
    """
    pass
