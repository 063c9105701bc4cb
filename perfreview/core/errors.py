from typing import Any


class ReviewError(Exception):
    """Base class for failures raised by the review lifecycle core.

    Every subclass carries the HTTP status the route layer should answer with,
    plus a stable machine-readable code.
    """

    status_code: int = 400
    code: str = "REVIEW_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details:
            detail.update(self.details)
        return detail


class ValidationError(ReviewError):
    status_code = 422
    code = "VALIDATION_FAILED"


class AuthorizationError(ReviewError):
    status_code = 403
    code = "NOT_PERMITTED"

    def __init__(self, message: str = "Not permitted to perform this action", details: dict[str, Any] | None = None):
        super().__init__(message, details)


class ConflictError(ReviewError):
    status_code = 409
    code = "CONFLICT"


class NotFoundError(ReviewError):
    status_code = 404
    code = "NOT_FOUND"
