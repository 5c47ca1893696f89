"""End-to-end tests: a real listener on an ephemeral port plus the bootstrap helpers."""

import signal
import socket
import threading
import time
from typing import Generator, Tuple

import pytest

import http_server
from http_server import create_listener, ensure_doc_root, install_signal_handlers, parse_args, run_server, serve_forever
from httpd.config import DEFAULT_PORT, ServerConfig, parse_port


@pytest.fixture
def running_server(tmp_path) -> Generator[Tuple[int, str], None, None]:
    doc_root = tmp_path / "www"
    doc_root.mkdir()
    (doc_root / "index.html").write_bytes(b"<p>hello</p>")

    server_socket = create_listener("127.0.0.1", 0)
    port = server_socket.getsockname()[1]
    shutdown = threading.Event()

    thread = threading.Thread(target=serve_forever, args=(server_socket, str(doc_root), shutdown), daemon=True)
    thread.start()

    yield port, str(doc_root)

    shutdown.set()
    thread.join(timeout=5)
    server_socket.close()
    assert not thread.is_alive()


def _request(port: int, raw: bytes) -> bytes:
    with socket.create_connection(("127.0.0.1", port), timeout=5) as client_socket:
        client_socket.sendall(raw)
        data = b""
        while True:
            received = client_socket.recv(4096)
            if received == b"":
                return data
            data += received


def test_serves_index_over_tcp(running_server) -> None:
    port, _ = running_server

    response = _request(port, b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")

    head, _, body = response.partition(b"\r\n\r\n")
    assert head.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Content-Length: 12\r\n" in head
    assert body == b"<p>hello</p>"


def test_connections_are_served_in_order(running_server) -> None:
    port, _ = running_server

    statuses = [
        _request(port, raw).split(b"\r\n", 1)[0]
        for raw in (b"GET / HTTP/1.1\r\n\r\n", b"PUT / HTTP/1.1\r\n\r\n", b"GET /missing HTTP/1.1\r\n\r\n")
    ]

    assert statuses == [b"HTTP/1.1 200 OK", b"HTTP/1.1 405 Method Not Allowed", b"HTTP/1.1 404 Not Found"]


def test_server_survives_a_client_that_hangs_up(running_server) -> None:
    port, _ = running_server

    socket.create_connection(("127.0.0.1", port), timeout=5).close()

    assert _request(port, b"HEAD / HTTP/1.1\r\n\r\n").startswith(b"HTTP/1.1 200 OK")


def test_shutdown_stops_idle_loop(tmp_path) -> None:
    server_socket = create_listener("127.0.0.1", 0)
    shutdown = threading.Event()
    thread = threading.Thread(target=serve_forever, args=(server_socket, str(tmp_path), shutdown))
    thread.start()

    shutdown.set()
    thread.join(timeout=5)
    server_socket.close()

    assert not thread.is_alive()


def test_listener_sets_reuseaddr() -> None:
    with create_listener("127.0.0.1", 0) as server_socket:
        assert server_socket.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) != 0


def test_ensure_doc_root_creates_default_index(tmp_path) -> None:
    doc_root = tmp_path / "public"

    ensure_doc_root(str(doc_root))

    assert (doc_root / "index.html").read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


def test_ensure_doc_root_leaves_existing_root_alone(tmp_path) -> None:
    ensure_doc_root(str(tmp_path))

    assert not (tmp_path / "index.html").exists()


def test_run_server_fails_when_port_is_taken(tmp_path) -> None:
    with create_listener("127.0.0.1", 0) as taken:
        port = taken.getsockname()[1]
        config = ServerConfig(host="127.0.0.1", port=port, doc_root=str(tmp_path))

        assert run_server(config, threading.Event()) == 1


def test_run_server_returns_once_shutdown_is_set(tmp_path) -> None:
    shutdown = threading.Event()
    shutdown.set()
    config = ServerConfig(host="127.0.0.1", port=0, doc_root=str(tmp_path / "www"))

    assert run_server(config, shutdown) == 0
    assert (tmp_path / "www" / "index.html").exists()


@pytest.mark.parametrize(
    "text, expected",
    [
        (None, DEFAULT_PORT),
        ("9000", 9000),
        ("9000abc", 9000),
        (" 8081", 8081),
        ("abc", DEFAULT_PORT),
        ("0", DEFAULT_PORT),
        ("", DEFAULT_PORT),
        ("70000", DEFAULT_PORT),
    ],
)
def test_parse_port(text, expected) -> None:
    assert parse_port(text) == expected


def test_parse_args_defaults() -> None:
    config = parse_args([])

    assert config.port == DEFAULT_PORT
    assert config.doc_root == "www"
    assert config.host == "0.0.0.0"
    assert config.log_level == "INFO"


def test_parse_args_port_and_root() -> None:
    config = parse_args(["9090", "--root", "site", "--log-level", "DEBUG"])

    assert config.port == 9090
    assert config.doc_root == "site"
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("signum", [signal.SIGINT, signal.SIGTERM])
def test_signal_handlers_set_shutdown(signum) -> None:
    previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    shutdown = threading.Event()
    try:
        install_signal_handlers(shutdown)
        signal.getsignal(signum)(signum, None)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    assert shutdown.is_set()


class _FailingListener:
    """accept() always fails; the third failure also asks for shutdown"""

    def __init__(self, shutdown: threading.Event) -> None:
        self.shutdown = shutdown
        self.accepts = 0

    def settimeout(self, value) -> None:
        pass

    def accept(self):
        self.accepts += 1
        if self.accepts == 3:
            self.shutdown.set()
        raise OSError(24, "Too many open files")


def test_accept_errors_back_off(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(http_server, "ACCEPT_POLL_INTERVAL", 0.1)
    shutdown = threading.Event()
    listener = _FailingListener(shutdown)

    started = time.monotonic()
    serve_forever(listener, str(tmp_path), shutdown)
    elapsed = time.monotonic() - started

    assert listener.accepts == 3
    assert elapsed >= 0.15
