from typing import Optional


class GalleryError(Exception):
    """Base class for failures that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SourceUnavailable(GalleryError):
    pass


class DownloadFailed(GalleryError):
    pass


class UploadFailed(GalleryError):
    pass


class NotFound(GalleryError):
    status_code = 404


class InvalidInput(GalleryError):
    status_code = 400


class StoreUnavailable(GalleryError):
    """Document store read or write failed.

    `upstream_status` and `upstream_body` are set when the store answered with an error response.
    """

    def __init__(self, message: str, upstream_status: Optional[int] = None, upstream_body: Optional[str] = None):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
