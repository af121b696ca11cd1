# simpledo/exceptions.py

from typing import Optional


class SimpleDoError(Exception):
    """Base error. `http_status` is what the API answers with."""

    http_status = 500


class StorageUnavailableError(SimpleDoError):
    http_status = 503


class ClipboardError(SimpleDoError):
    http_status = 400


class InvalidImageError(ClipboardError):
    pass


class DuplicateTaskError(SimpleDoError):
    http_status = 409


class NothingToCopyError(SimpleDoError):
    http_status = 409


class GeminiAPIError(SimpleDoError):
    http_status = 502

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
