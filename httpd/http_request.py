"""
Responsibility: pull the request line out of the initial read and split it into
method, target and version. Headers and body are never looked at.

Error cases: no CRLF in the buffer, wrong token count or an oversized token
-> MalformedRequestError (answered with 400).
"""

import os
from dataclasses import dataclass

from httpd.config import MAX_METHOD_LENGTH, MAX_TARGET_LENGTH, MAX_VERSION_LENGTH
from httpd.errors import MalformedRequestError

CRLF: bytes = b"\r\n"


@dataclass(frozen=True)
class HttpRequest:
    """
    Holds the three request-line fields. The target is kept exactly as sent:
    no percent-decoding and no query stripping
    """
    method: str
    target: str
    http_version: str

    @property
    def request_line(self) -> str:
        return f"{self.method} {self.target} {self.http_version}"


def extract_request_line(payload: bytes) -> bytes:
    line, separator, _ = payload.partition(CRLF)
    if not separator:
        raise MalformedRequestError("No line terminator in request")

    return line


def parse_request_line(line: bytes) -> HttpRequest:
    parts = line.split()
    if len(parts) != 3:
        raise MalformedRequestError(f"Expected 3 tokens in request-line, got {len(parts)}")

    method, target, version = parts

    if len(method) > MAX_METHOD_LENGTH:
        raise MalformedRequestError("Request-line method too long")
    if len(target) > MAX_TARGET_LENGTH:
        raise MalformedRequestError("Request-line target too long")
    if len(version) > MAX_VERSION_LENGTH:
        raise MalformedRequestError("Request-line version too long")

    # fsdecode keeps undecodable bytes as surrogates so they map back to the
    # same filename bytes later
    return HttpRequest(
        method=method.decode("ascii", errors="replace"),
        target=os.fsdecode(target),
        http_version=version.decode("ascii", errors="replace"),
    )


def parse_request(payload: bytes) -> HttpRequest:
    return parse_request_line(extract_request_line(payload))
