"""
Failures raised while turning raw bytes into a servable file path.

Each carries the status code the connection handler answers with.
"""


class HttpError(Exception):
    status_code: int = 400


class MalformedRequestError(HttpError):
    """Request line missing, unterminated, or not exactly three bounded tokens"""


class PathRejectedError(HttpError):
    """Target tries to leave the document root"""


class PathTooLongError(HttpError):
    """Composed filesystem path does not fit the path limit"""
