"""Authenticating HTTPS file server.

Serves a directory read-only over TLS. Every request passes the Basic
auth gate before it reaches the static file handler.
"""

import logging
import socket
import ssl
import threading
from dataclasses import dataclass, field
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Optional

from secureserve.auth import (
    DEFAULT_REALM,
    challenge_header,
    is_valid_realm,
    validate_basic_auth,
)
from secureserve.config import DEFAULT_BIND, DEFAULT_PORT
from secureserve.password import Credential
from secureserve.tls import TLSConfig, create_ssl_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerConfig:
    """Everything the server needs, fixed at startup."""

    directory: Path
    tls_config: TLSConfig
    credential: Credential = field(repr=False)
    bind: str = DEFAULT_BIND
    port: int = DEFAULT_PORT
    realm: str = DEFAULT_REALM

    def __post_init__(self):
        if not is_valid_realm(self.realm):
            raise ValueError(f"Invalid realm: {self.realm!r}")


class AuthenticatingHandler(SimpleHTTPRequestHandler):
    """Static file handler behind an HTTP Basic auth gate."""

    server: "SecureHTTPServer"

    def __init__(self, request, client_address, server):
        super().__init__(
            request,
            client_address,
            server,
            directory=str(server.config.directory),
        )

    def log_message(self, format: str, *args):
        """Override to use Python logging."""
        logger.info("%s - %s", self.address_string(), format % args)

    def parse_request(self) -> bool:
        """Parse the request line and headers, then apply the auth gate.

        Returning False stops handle_one_request before any do_* method runs,
        so the gate covers every verb.
        """
        if not super().parse_request():
            return False

        config = self.server.config
        error = validate_basic_auth(self.headers.get("Authorization"), config.credential)
        if error is None:
            return True

        logger.warning(
            "%s - %s %s rejected (%s)",
            self.address_string(), self.command, self.path, error.code,
        )
        self.send_unauthorized(config.realm)
        return False

    def send_unauthorized(self, realm: str):
        """Send a 401 with a Basic challenge."""
        body = b"Unauthorized.\n"
        self.send_response(HTTPStatus.UNAUTHORIZED)
        self.send_header("WWW-Authenticate", challenge_header(realm))
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)


class SecureHTTPServer(ThreadingHTTPServer):
    """Threading HTTP server that speaks only TLS.

    The listening socket stays plain; each accepted connection is wrapped and
    its handshake runs in the connection's own thread.
    """

    daemon_threads = True

    def __init__(self, config: ServerConfig, ssl_context: ssl.SSLContext):
        self.config = config
        self.ssl_context = ssl_context
        super().__init__((config.bind, config.port), AuthenticatingHandler)

    def get_request(self) -> tuple[socket.socket, tuple]:
        sock, addr = self.socket.accept()
        tls_sock = self.ssl_context.wrap_socket(
            sock, server_side=True, do_handshake_on_connect=False
        )
        return tls_sock, addr

    def finish_request(self, request, client_address):
        try:
            request.do_handshake()
        except (ssl.SSLError, OSError) as e:
            logger.warning("%s - TLS handshake failed: %s", client_address[0], e)
            return
        super().finish_request(request, client_address)

    def handle_error(self, request, client_address):
        logger.exception("%s - error while handling request", client_address[0])


class Server:
    """HTTPS file server with a single shared credential.

    States: not started -> listening -> stopped.
    """

    def __init__(self, config: ServerConfig):
        """Initialize server.

        Args:
            config: Directory, TLS material, credential and listen address
        """
        self.config = config
        self.httpd: Optional[SecureHTTPServer] = None
        self._serving = threading.Event()
        self._stopped = False

    @property
    def server_address(self) -> tuple:
        """Bound (host, port); the port is the real one when configured as 0."""
        if not self.httpd:
            raise RuntimeError("Server not started")
        return self.httpd.server_address

    def start(self):
        """Bind the TLS listener.

        Raises:
            CertificateError: If the TLS key pair cannot be loaded
            OSError: If the address cannot be bound
        """
        if self.httpd or self._stopped:
            raise RuntimeError("Server already started")

        context = create_ssl_context(self.config.tls_config)
        self.httpd = SecureHTTPServer(self.config, context)

        host, port = self.httpd.server_address[:2]
        logger.info("Server starting on https://%s:%d", host, port)
        logger.info("Serving directory: %s", self.config.directory)
        logger.info("Certificate fingerprint: %s", self.config.tls_config.fingerprint)

    def serve_forever(self, stop_event: Optional[threading.Event] = None):
        """Serve requests until shutdown() is called or stop_event is set."""
        httpd = self.httpd
        if not httpd:
            raise RuntimeError("Server not started")

        # Must be set before the watcher can call shutdown().
        self._serving.set()
        if stop_event is not None:
            watcher = threading.Thread(
                target=self._wait_for_stop, args=(stop_event,), daemon=True
            )
            watcher.start()

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("Shutdown requested")
        finally:
            self._close()

    def _wait_for_stop(self, stop_event: threading.Event):
        stop_event.wait()
        self.shutdown()

    def shutdown(self):
        """Stop serving and release the socket. Safe to call more than once."""
        httpd = self.httpd
        if httpd is None:
            return

        logger.info("Shutting down server")
        if self._serving.is_set():
            # Returns once the serve_forever loop has exited.
            httpd.shutdown()
        else:
            self._close()

    def _close(self):
        if self.httpd:
            self.httpd.server_close()
            self.httpd = None
        self._serving.clear()
        self._stopped = True


def create_server(config: ServerConfig) -> Server:
    """Create a server instance (not yet started)."""
    return Server(config)
