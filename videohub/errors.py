"""
Error kinds raised by the read model and the engagement handlers.

Each carries the HTTP status the enclosing FastAPI app maps it to, so the
kind is preserved all the way to the response envelope.
"""


class ApiError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidIdentifier(ApiError):
    status_code = 400
    default_message = "Invalid identifier"


class InvalidParameter(ApiError):
    status_code = 400
    default_message = "Invalid parameter"


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized request"


class NotFound(ApiError):
    status_code = 404
    default_message = "Resource not found"


class StorageError(ApiError):
    status_code = 500
    default_message = "Storage operation failed"
