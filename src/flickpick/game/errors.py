from __future__ import annotations


class FlickPickError(Exception):
    """Base class for user-visible game errors."""

    status_code: int = 400
    code: str = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class InvalidRequest(FlickPickError):
    status_code = 400
    code = "invalid_request"


class Unauthorized(FlickPickError):
    status_code = 401
    code = "unauthorized"


class NotFound(FlickPickError):
    status_code = 404
    code = "not_found"


class AlreadyCompleted(FlickPickError):
    status_code = 400
    code = "already_completed"


class NoMoreImages(FlickPickError):
    status_code = 400
    code = "no_more_images"
