"""
Command-line entry point: picks a free port, checks the store, runs uvicorn.
"""

from __future__ import annotations

import argparse
import errno
import logging
import socket
import sys

import uvicorn

from maio.app import create_app
from maio.config import get_settings
from maio.db import StoreError
from maio.dependencies import build_store

logger = logging.getLogger(__name__)

DEFAULT_PORT_ATTEMPTS = 50


def port_is_free(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError as exc:
            if exc.errno in (errno.EADDRINUSE, errno.EACCES):
                return False
            raise
    return True


def find_available_port(
    preferred: int, host: str = "0.0.0.0", max_attempts: int = DEFAULT_PORT_ATTEMPTS
) -> int:
    """Return ``preferred`` or the first free port above it."""
    for port in range(preferred, min(preferred + max_attempts, 65536)):
        if port_is_free(host, port):
            return port
    raise RuntimeError(
        f"No free port in range {preferred}-{preferred + max_attempts - 1}"
    )


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="MAIO content backend")
    parser.add_argument("--host", type=str, default=settings.host, help="Bind address")
    parser.add_argument(
        "--port", type=int, default=settings.port, help="Preferred port to bind"
    )
    parser.add_argument(
        "--max-port-attempts",
        type=int,
        default=DEFAULT_PORT_ATTEMPTS,
        help="How many successive ports to probe",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    try:
        store = build_store(settings)
        store.ping()
    except (StoreError, ValueError) as exc:
        logger.error("Could not connect to the %s store: %s", settings.resolved_store_backend(), exc)
        return 1
    logger.info("Connected to %s store", store.backend_name)

    port = find_available_port(args.port, args.host, args.max_port_attempts)
    if port != args.port:
        logger.warning("Port %d is in use, using port %d instead", args.port, port)

    base_url = settings.public_api_url or f"http://localhost:{port}"
    logger.info("API base URL: %s%s", base_url, settings.api_prefix)
    logger.info("Health check: %s%s/health", base_url, settings.api_prefix)
    if settings.public_api_url and port != args.port:
        logger.warning("PUBLIC_API_URL may need updating to use port %d", port)

    # uvicorn handles SIGINT gracefully; the app lifespan closes the store.
    uvicorn.run(
        create_app(settings, store),
        host=args.host,
        port=port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
