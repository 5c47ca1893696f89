import os
from typing import Final, Dict

DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"

# Exact, case-sensitive extension lookup
MIME_TYPES: Final[Dict[str, str]] = {
    "html": "text/html; charset=utf-8",
    "htm": "text/html; charset=utf-8",
    "css": "text/css; charset=utf-8",
    "js": "application/javascript; charset=utf-8",
    "json": "application/json; charset=utf-8",
    "txt": "text/plain; charset=utf-8",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
}


def get_content_type(path: str) -> str:
    filename = os.path.basename(path)
    _, dot, extension = filename.rpartition(".")
    if not dot:
        return DEFAULT_CONTENT_TYPE

    return MIME_TYPES.get(extension, DEFAULT_CONTENT_TYPE)
