"""Entry point for running receiptable as a module."""

import logging
import sys

import uvicorn

from receiptable.config import settings


def main() -> int:
    """Run the receiptable print server."""
    # Configure logging
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logging.getLogger(__name__).info(f"Starting receiptable print server on {settings.host}:{settings.port}")
    uvicorn.run(
        "receiptable.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
