"""CLI entry point for secureserve.

Shares a directory over HTTPS on port 8081 behind a generated password:

    secureserve -d ~/Downloads
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from secureserve.config import ConfigError, Settings, get_cert_dir, load_settings
from secureserve.errors import StartupError
from secureserve.httpd import Server, ServerConfig
from secureserve.netinfo import connection_lines, list_ipv4_addresses
from secureserve.password import generate_credential, load_word_list
from secureserve.tls import ensure_certificate

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secureserve",
        description="Serve a directory over HTTPS with a generated password",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--directory", "-d",
        type=Path,
        default=Path("."),
        help="The directory to serve",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Settings file (default: ~/.config/secureserve/config.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def _configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _resolve_directory(directory: Path) -> Path:
    """Return the absolute served directory.

    Raises:
        ConfigError: If it does not exist or is not a directory
    """
    resolved = directory.expanduser().resolve()
    if not resolved.is_dir():
        raise ConfigError(f"Not a directory: {directory}")
    return resolved


def build_server(directory: Path, settings: Settings, cert_dir: Path) -> Server:
    """Run the startup steps in order and return a started server.

    Raises:
        StartupError: If any step fails
    """
    served = _resolve_directory(directory)
    credential = generate_credential(load_word_list(settings.words_file))
    tls_config = ensure_certificate(cert_dir)

    config = ServerConfig(
        directory=served,
        tls_config=tls_config,
        credential=credential,
        bind=settings.bind,
        realm=settings.realm,
    )
    server = Server(config)
    server.start()
    return server


def _announce(server: Server):
    """Print one connection URL per local address."""
    config = server.config
    for line in connection_lines(list_ipv4_addresses(), config.port, config.credential):
        print(line, flush=True)


def _install_signal_handlers(stop_event: threading.Event):
    def handle_stop(signum, frame):
        logger.info("Received %s", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGTERM, handle_stop)
    signal.signal(signal.SIGINT, handle_stop)


def main(argv=None):
    """CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    args = _build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        _configure_logging("INFO")
        logger.error("Failed to start server: %s", e)
        return 1

    _configure_logging("DEBUG" if args.verbose else settings.log_level)

    stop_event = threading.Event()
    _install_signal_handlers(stop_event)

    server = None
    try:
        server = build_server(args.directory, settings, get_cert_dir())
        _announce(server)
    except (StartupError, OSError) as e:
        logger.error("Failed to start server: %s", e)
        if server:
            server.shutdown()
        return 1

    if stop_event.is_set():
        server.shutdown()
        return 0

    server.serve_forever(stop_event)
    return 0


if __name__ == "__main__":
    sys.exit(main())
