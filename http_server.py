import argparse
import logging
import os
import signal
import socket
import sys
import threading
from typing import Optional

from httpd.config import (
    ACCEPT_POLL_INTERVAL,
    DEFAULT_DOC_ROOT,
    DEFAULT_HOST,
    INDEX_FILE,
    LISTEN_BACKLOG,
    ServerConfig,
    configure_logging,
    parse_port,
)
from httpd.connection import handle_connection

logger = logging.getLogger("http_server")

DEFAULT_INDEX_PAGE: str = """<!DOCTYPE html>
<html>
<head><title>It works</title></head>
<body>
<h1>It works</h1>
<p>Put files in this directory to serve them.</p>
</body>
</html>
"""


def ensure_doc_root(doc_root: str) -> None:
    """
    Creates the document root with a default index page when it does not exist
    yet. An existing root is left alone
    """
    if os.path.isdir(doc_root):
        return

    os.makedirs(doc_root)
    with open(os.path.join(doc_root, INDEX_FILE), "w", encoding="utf-8") as f:
        f.write(DEFAULT_INDEX_PAGE)

    logger.info(f"Created document root {doc_root} with a default {INDEX_FILE}")


def create_listener(host: str = DEFAULT_HOST, port: int = 8080, backlog: int = LISTEN_BACKLOG) -> socket.socket:
    server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        server_socket.bind((host, port))
        server_socket.listen(backlog)
    except OSError:
        server_socket.close()
        raise

    return server_socket


def serve_forever(server_socket: socket.socket, doc_root: str, shutdown: threading.Event) -> None:
    """
    Sequential accept loop: each connection is serviced to completion before
    the next accept. The shutdown event is checked once per iteration, never
    in the middle of a request.
    """
    # accept() wakes up periodically so a shutdown is seen without a new client
    server_socket.settimeout(ACCEPT_POLL_INTERVAL)

    while not shutdown.is_set():
        try:
            client_socket, client_address = server_socket.accept()
        except socket.timeout:
            continue
        except OSError as e:
            if shutdown.is_set():
                break
            logger.error(f"accept() failed: {e}")
            # Back off so a persistent failure such as EMFILE does not spin
            shutdown.wait(ACCEPT_POLL_INTERVAL)
            continue

        client_socket.setblocking(True)
        handle_connection(client_socket, client_address, doc_root)


def install_signal_handlers(shutdown: threading.Event) -> None:
    def request_shutdown(signum, frame) -> None:
        logger.info(f"Received signal {signum}, finishing current connection and shutting down")
        shutdown.set()

    signal.signal(signal.SIGINT, request_shutdown)
    signal.signal(signal.SIGTERM, request_shutdown)


def run_server(config: ServerConfig, shutdown: Optional[threading.Event] = None) -> int:
    if shutdown is None:
        shutdown = threading.Event()

    try:
        ensure_doc_root(config.doc_root)
    except OSError as e:
        logger.critical(f"Cannot create document root {config.doc_root}: {e}")
        return 1

    try:
        server_socket = create_listener(config.host, config.port, config.backlog)
    except OSError as e:
        logger.critical(f"Cannot listen on {config.host}:{config.port}: {e}")
        return 1

    logger.info(f"Serving {os.path.abspath(config.doc_root)} on http://{config.host}:{config.port}")

    try:
        serve_forever(server_socket, config.doc_root, shutdown)
    finally:
        server_socket.close()

    logger.info("Server stopped")
    return 0


def parse_args(argv: Optional[list[str]] = None) -> ServerConfig:
    parser = argparse.ArgumentParser(description="Serve files from a document root over HTTP/1.1 (GET and HEAD only)")
    parser.add_argument("port", nargs="?", default=None, help="port to listen on (default: 8080)")
    parser.add_argument("--root", default=DEFAULT_DOC_ROOT, help=f"document root (default: {DEFAULT_DOC_ROOT})")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    return ServerConfig(port=parse_port(args.port), doc_root=args.root, log_level=args.log_level)


def main(argv: Optional[list[str]] = None) -> int:
    config = parse_args(argv)
    configure_logging(config.log_level)

    shutdown = threading.Event()
    install_signal_handlers(shutdown)

    return run_server(config, shutdown)


if __name__ == "__main__":
    sys.exit(main())
