"""
Application error hierarchy

    AppError
    ├── ValidationError       400  missing/malformed input, oversized file, bad category id
    ├── Unauthorized          401  missing/invalid/expired/revoked token, bad credentials
    ├── Forbidden             403  authenticated but not allowed (role-gated routes)
    ├── NotFound              404  soft-deleted, nonexistent or out-of-scope id
    ├── Conflict              409  unique-constraint collision
    ├── RangeNotSatisfiable   416  byte range outside the object
    ├── TooManyRequests       429  rate limit exceeded
    └── InternalError         500  storage/database failure

Services raise these; the handlers registered in main.py turn them into the
JSON envelope {status, code, message}.
"""
from typing import Optional


class AppError(Exception):
    """Base error carrying an HTTP status and a client-safe message"""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized access"


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden access"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Data already exists"


class RangeNotSatisfiable(AppError):
    status_code = 416
    default_message = "Requested range not satisfiable"

    def __init__(self, size: Optional[int] = None, message: Optional[str] = None):
        self.size = size
        super().__init__(message)


class TooManyRequests(AppError):
    status_code = 429
    default_message = "Terlalu banyak permintaan, silakan coba lagi nanti."


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"
