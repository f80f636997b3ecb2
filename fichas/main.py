"""Ficha card service - HTTP entry point."""

import argparse
import sys

import uvicorn

from .api import create_app
from .config import get_settings
from .utils import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Ficha card service - renders DNI lookups as PNG cards",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fichas.main                 # Serve on HOST:PORT from the environment
  python -m fichas.main --port 8080     # Override the port
  python -m fichas.main --debug         # Enable debug logging

Endpoints:
  GET /generar-ficha?dni=...       Generate (or reuse) the cards for a DNI
  GET /descargar-ficha?url=...     Download a stored card as an attachment
  GET /buscar-por-nombre           Not implemented (501)
  GET /buscar-por-padres           Not implemented (501)
  GET /buscar-por-edad             Not implemented (501)
        """,
    )

    parser.add_argument(
        "--host",
        type=str,
        help="Override the bind address",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Override the listening port",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args()


def main() -> int:
    """Main entry point."""
    args = parse_args()
    settings = get_settings()

    log_level = "DEBUG" if args.debug else settings.log_level
    setup_logging(level=log_level)

    for warning in settings.startup_warnings():
        logger.warning(warning)

    host = args.host or settings.host
    port = args.port or settings.port
    logger.info(f"Starting ficha service on {host}:{port}")
    logger.info(f"Public base URL: {settings.public_base_url}")

    uvicorn.run(create_app(settings), host=host, port=port, log_config=None, log_level=log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
