"""
Responsibility: frame status-line, headers and body for a single response and
write them onto the client socket.

Only Content-Length framing is produced, so the body size must be known before
the head is sent.
"""

import logging
import socket
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Final, Optional

from httpd.config import HTTP_VERSION, SEND_CHUNK_SIZE, SERVER_NAME

logger = logging.getLogger(__name__)

REASON_PHRASES: Final[Dict[int, str]] = {
    200: "OK",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
}

ERROR_CONTENT_TYPE: Final[str] = "text/html; charset=utf-8"


@dataclass
class HttpResponse:
    """
    Status and headers in the order they go on the wire. Body is only set for
    generated pages; file bodies are streamed separately by send_file
    """
    status_code: int
    reason: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    def set_header(self, key: str, value: str) -> None:
        self.headers[key] = value

    def get_header(self, key: str) -> Optional[str]:
        return self.headers.get(key)

    def serialize_head(self) -> bytes:
        status_line = f"{HTTP_VERSION} {self.status_code} {self.reason}"
        field_lines = "".join(f"{key}: {value}\r\n" for key, value in self.headers.items())
        return f"{status_line}\r\n{field_lines}\r\n".encode("latin-1")


def http_date(now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    return now.strftime('%a, %d %b %Y %H:%M:%S GMT')


def create_response(status_code: int, content_type: str, content_length: int, body: Optional[bytes] = None) -> HttpResponse:
    response = HttpResponse(status_code=status_code, reason=REASON_PHRASES[status_code])

    response.set_header("Date", http_date())
    response.set_header("Server", SERVER_NAME)
    response.set_header("Content-Type", content_type)
    response.set_header("Content-Length", str(content_length))
    response.set_header("Connection", "close")

    response.body = body
    return response


def error_page(status_code: int) -> bytes:
    status = f"{status_code} {REASON_PHRASES[status_code]}"
    return f"<html><head><title>{status}</title></head><body><h1>{status}</h1></body></html>\n".encode("utf-8")


def error_response(status_code: int) -> HttpResponse:
    body = error_page(status_code)
    return create_response(status_code, ERROR_CONTENT_TYPE, len(body), body)


def send_response(client_socket: socket.socket, response: HttpResponse) -> None:
    # Head and generated body are small, one sendall each
    client_socket.sendall(response.serialize_head())
    if response.body:
        client_socket.sendall(response.body)


def send_all(client_socket: socket.socket, data: bytes) -> bool:
    """
    Writes the whole chunk, resuming after partial sends. Returns False once
    the socket stops accepting data.
    """
    view = memoryview(data)
    while view:
        try:
            sent = client_socket.send(view)
        except OSError as e:
            logger.warning(f"Write failed mid-transfer: {e}")
            return False

        if sent <= 0:
            return False

        view = view[sent:]

    return True


def send_file(client_socket: socket.socket, file: BinaryIO, limit: int, chunk_size: int = SEND_CHUNK_SIZE) -> int:
    """
    Copies at most limit bytes of the file onto the socket chunk by chunk, so
    a file that grows after the stat never overruns the declared
    Content-Length. Stops without retrying on end-of-file, a read error or a
    failed write, and returns the number of bytes delivered. The head has
    already been committed by then, so nothing is raised.
    """
    total = 0
    while total < limit:
        try:
            chunk = file.read(min(chunk_size, limit - total))
        except OSError as e:
            logger.warning(f"Read failed mid-transfer: {e}")
            break

        if not chunk:
            break

        if not send_all(client_socket, chunk):
            break

        total += len(chunk)

    return total
