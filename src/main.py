"""Application entry point for the credit report consolidation API server."""

import argparse
import os
from pathlib import Path

import uvicorn

from src.api.app import CONFIG_ENV_VAR, app
from src.utils.config import load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Start the FastAPI application server.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(description="Credit Report Consolidation API")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="YAML configuration file"
    )
    args = parser.parse_args(argv)

    if args.config is not None:
        os.environ[CONFIG_ENV_VAR] = str(args.config)

    config = load_config(args.config)
    setup_logging(config.log_level)
    logger.info("Starting API on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
