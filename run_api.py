#!/usr/bin/env python3
"""
Script to run the Bookshelf API server.
"""

import sys

import uvicorn
from pydantic import ValidationError

from api.config import get_config
from utilities.logger import get_logger, setup_logging


def main():
    """Run the API server."""
    try:
        config = get_config()
    except ValidationError as e:
        print(f"Invalid configuration, refusing to start:\n{e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug,
    )
    logger = get_logger(__name__)
    logger.info(
        "Starting Bookshelf API server",
        host=config.host,
        port=config.port,
        debug=config.debug,
        user_database=config.user_database,
        books_database=config.books_database,
    )

    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
