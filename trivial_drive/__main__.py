"""Command line entry point: ``python -m trivial_drive`` or ``trivial-drive``."""

import argparse
import os
import sys
from typing import Optional, Sequence

import uvicorn

from trivial_drive import __version__
from trivial_drive.config import Config, ConfigurationError
from trivial_drive.logging_config import configure_logging, get_logger

logger = get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def build_parser() -> argparse.ArgumentParser:
    """Flags default to the environment variables the app factory reads."""
    parser = argparse.ArgumentParser(
        prog="trivial-drive",
        description="Serve the Trivial Drive gas tank and its in-app purchases over HTTP",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8080")))
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=os.getenv("LOG_LEVEL", "INFO").upper())
    parser.add_argument("--log-format", choices=["json", "console"], default=os.getenv("LOG_FORMAT", "json"))
    parser.add_argument(
        "--config",
        default=os.getenv("CONFIG_PATH", "config/products.yaml"),
        help="products.yaml with the catalog, gas tank bounds and message texts",
    )
    parser.add_argument("--reload", action="store_true", help="restart on code changes (development)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    os.environ["LOG_LEVEL"] = args.log_level
    os.environ["LOG_FORMAT"] = args.log_format
    os.environ["CONFIG_PATH"] = args.config
    configure_logging(log_level=args.log_level, json_format=args.log_format == "json")

    # Fail before uvicorn starts if the catalog cannot be loaded
    try:
        config = Config(args.config)
    except ConfigurationError as e:
        logger.error("config_invalid", config=args.config, error=str(e))
        sys.exit(1)

    logger.info(
        "trivial_drive_serving",
        version=__version__,
        host=args.host,
        port=args.port,
        config=str(config.config_path),
        products=len(config.products.products) + len(config.products.subscriptions),
    )
    uvicorn.run(
        "trivial_drive.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        reload=args.reload,
        access_log=False,  # RequestLoggingMiddleware logs requests
    )


if __name__ == "__main__":
    main()
