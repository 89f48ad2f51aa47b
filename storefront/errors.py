"""Domain errors. Each carries the HTTP status the API answers with."""
from typing import Optional


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(StorefrontError):
    status_code = 400


class UnauthorizedError(StorefrontError):
    status_code = 401


class NotFoundError(StorefrontError):
    status_code = 404


class ConflictError(StorefrontError):
    status_code = 409


class InsufficientStockError(ConflictError):
    pass


class TotalMismatchError(BadRequestError):
    pass


class UpstreamError(StorefrontError):
    """An external service (GitHub, Supabase, Cloudinary) failed; its status is propagated."""

    status_code = 502


class ConfigurationError(StorefrontError):
    status_code = 500
