"""
Services exactly one request on an accepted connection:
read -> parse -> method check -> resolve -> stat -> open -> respond.

Every failure is turned into an error page or a silent close here, and the
client socket is closed exactly once on every path out.
"""

import logging
import os
import socket
import stat
from typing import Final, Optional, Tuple

from httpd.config import RECV_BUFFER_SIZE
from httpd.errors import HttpError
from httpd.http_request import HttpRequest, parse_request
from httpd.http_response import create_response, error_response, send_file, send_response
from httpd.mime import get_content_type
from httpd.paths import resolve_path

logger = logging.getLogger(__name__)

ALLOWED_METHODS: Final[Tuple[str, ...]] = ("GET", "HEAD")


def read_request(client_socket: socket.socket) -> bytes:
    # One bounded read; anything past the request line is never needed
    return client_socket.recv(RECV_BUFFER_SIZE)


def reject(client_socket: socket.socket, status_code: int) -> int:
    response = error_response(status_code)
    send_response(client_socket, response)
    return len(response.body or b"")


def respond(client_socket: socket.socket, request: HttpRequest, doc_root: str) -> Tuple[int, int]:
    """
    Runs the request through method check, path resolution, stat and open.
    Returns the status code sent and the number of body bytes written
    """
    if request.method not in ALLOWED_METHODS:
        return 405, reject(client_socket, 405)

    try:
        file_path = resolve_path(doc_root, request.target)
    except HttpError as e:
        logger.debug(f"Rejected target {request.target!r}: {e}")
        return e.status_code, reject(client_socket, e.status_code)

    # Follows symlinks, so a link is only served when it ends at a regular file
    try:
        file_stat = os.stat(file_path)
    except OSError:
        return 404, reject(client_socket, 404)

    if not stat.S_ISREG(file_stat.st_mode):
        return 404, reject(client_socket, 404)

    try:
        file = open(file_path, "rb")
    except OSError as e:
        logger.debug(f"Cannot open {file_path}: {e}")
        return 403, reject(client_socket, 403)

    with file:
        response = create_response(200, get_content_type(file_path), file_stat.st_size)
        send_response(client_socket, response)

        if request.method == "HEAD":
            return 200, 0

        sent = send_file(client_socket, file, file_stat.st_size)
        if sent != file_stat.st_size:
            logger.warning(f"Transfer of {file_path} ended after {sent} of {file_stat.st_size} bytes")

        return 200, sent


def handle_connection(client_socket: socket.socket, client_address: Optional[Tuple[str, int]], doc_root: str) -> None:
    peer = f"{client_address[0]}:{client_address[1]}" if client_address else "-"

    try:
        request_data = read_request(client_socket)

        if not request_data:
            logger.debug(f"Connection from {peer} closed before sending a request")
            return

        try:
            request = parse_request(request_data)
        except HttpError as e:
            logger.debug(f"Malformed request from {peer}: {e}")
            status_code, sent = e.status_code, reject(client_socket, e.status_code)
            logger.info(f'{peer} "-" {status_code} {sent}')
            return

        status_code, sent = respond(client_socket, request, doc_root)
        logger.info(f'{peer} "{request.request_line}" {status_code} {sent}')

    except OSError as e:
        # Peer went away while we were reading or writing the head
        logger.debug(f"Connection error with {peer}: {e}")
    except Exception:
        logger.exception(f"Unexpected error handling connection from {peer}")
    finally:
        client_socket.close()
