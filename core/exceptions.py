from typing import List, Optional


class QuizAPIError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(QuizAPIError):
    status_code = 400
    message = "Invalid input data"

    def __init__(self, details: List[str], message: Optional[str] = None):
        super().__init__(message)
        self.details = list(details)

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class Unauthorized(QuizAPIError):
    status_code = 401
    message = "Unauthorized"


class NotFound(QuizAPIError):
    status_code = 404
    message = "Not found"


class RateLimited(QuizAPIError):
    status_code = 429
    message = "Too many requests. Please wait before retrying."

    def __init__(self, retry_after: int, message: Optional[str] = None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        return {"error": self.message, "retryAfter": self.retry_after}
