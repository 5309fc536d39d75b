"""Error taxonomy shared by services and routers.

Every error carries an HTTP status and a single human-readable message; the
handlers in ``app.main`` turn them into ``{"success": false, "message": ...}``.
"""
from fastapi import status


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"

    def __init__(self, message: str | None = None, kind: str | None = None):
        super().__init__(message)
        self.kind = kind


class InvalidRating(ValidationError):
    default_message = "Rating must be a number between 1 and 5"

    def __init__(self, message: str | None = None):
        super().__init__(message, kind="invalid-rating")


class InvalidVote(ValidationError):
    default_message = "Invalid vote data"

    def __init__(self, message: str | None = None):
        super().__init__(message, kind="invalid-vote")


class ProductNotInOrder(ValidationError):
    default_message = "This product is not part of the order"

    def __init__(self, message: str | None = None):
        super().__init__(message, kind="product-not-in-order")


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Please login to continue"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to access this resource"


class MediaUploadError(AppError):
    default_message = "File upload failed"


class MediaDeleteError(AppError):
    default_message = "File delete failed"


class UnexpectedError(AppError):
    pass


class ReviewConflictError(UnexpectedError):
    default_message = "Review could not be saved, please try again"


class OrderFlagUpdateError(UnexpectedError):
    default_message = "Review saved, but the order could not be updated"
