from typing import List, Optional


class ShortLinkError(Exception):
    """Base error; carries the HTTP status it maps to"""

    status_code = 500

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ShortLinkError):
    """Malformed input"""
    status_code = 400


class NotFoundError(ShortLinkError):
    status_code = 404


class ConflictError(ShortLinkError):
    """Short code already taken"""
    status_code = 409


class GoneError(ShortLinkError):
    """Link exists but is inactive or expired"""
    status_code = 410


class StorageError(ShortLinkError):
    """Reading or writing the link/click tables failed"""
    status_code = 500


class GenerationError(ShortLinkError):
    """No free short code could be drawn"""
    status_code = 500


class ExternalServiceError(ShortLinkError):
    """A third-party lookup failed.

    Never reaches the client: the tracking path turns it into degraded data.
    """
    status_code = 502
