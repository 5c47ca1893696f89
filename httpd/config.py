"""
Server-wide constants and the runtime configuration built from the CLI
"""

import logging
import re
from dataclasses import dataclass
from typing import Final

DEFAULT_HOST: Final[str] = "0.0.0.0"    # All interfaces
DEFAULT_PORT: Final[int] = 8080
DEFAULT_DOC_ROOT: Final[str] = "www"    # Relative to the working directory
LISTEN_BACKLOG: Final[int] = 128

RECV_BUFFER_SIZE: Final[int] = 8192
SEND_CHUNK_SIZE: Final[int] = 8192
ACCEPT_POLL_INTERVAL: Final[float] = 0.5  # Seconds between shutdown checks

# Request-line token limits, in bytes
MAX_METHOD_LENGTH: Final[int] = 7
MAX_TARGET_LENGTH: Final[int] = 2047
MAX_VERSION_LENGTH: Final[int] = 15

# Composed filesystem path, terminator included
MAX_PATH_LENGTH: Final[int] = 4096

HTTP_VERSION: Final[str] = "HTTP/1.1"
SERVER_NAME: Final[str] = "tiny-httpd/1.0"
INDEX_FILE: Final[str] = "index.html"

LOG_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

LEADING_INT_PATTERN: re.Pattern = re.compile(r"\s*([+-]?\d+)")


@dataclass
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    doc_root: str = DEFAULT_DOC_ROOT
    backlog: int = LISTEN_BACKLOG
    log_level: str = "INFO"


def parse_port(text: str | None) -> int:
    """
    Reads a port the way atoi() would: leading digits count, trailing junk is
    ignored. Anything that ends up as 0 or outside the valid range falls back
    to DEFAULT_PORT.
    """
    if text is None:
        return DEFAULT_PORT

    match = LEADING_INT_PATTERN.match(text)
    if match is None:
        return DEFAULT_PORT

    port = int(match.group(1))
    if port <= 0 or port > 65535:
        return DEFAULT_PORT

    return port


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
