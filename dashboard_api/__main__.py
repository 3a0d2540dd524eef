"""Command-line entry point for running the dashboard API locally."""

import argparse
import os
from pathlib import Path

from .config import Config
from .logging_config import setup_structured_logging
from .router import Router
from .server import serve


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the new tab dashboard API")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="Interface to bind")
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("PORT", "8080")), help="Port to listen on"
    )
    parser.add_argument(
        "--static-dir",
        type=Path,
        default=Path(os.getenv("STATIC_DIR", "dist")),
        help="Directory holding the built client (index.html)",
    )
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_structured_logging(args.log_level)
    serve(Router(Config()), host=args.host, port=args.port, static_dir=args.static_dir)


if __name__ == "__main__":
    main()
