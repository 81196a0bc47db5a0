"""
OpenMensa - Main entry point.

Runs the API server:

    python -m openmensa.main
"""

from __future__ import annotations

import logging

import uvicorn

from openmensa.config import get_settings


def main():
    """Main entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "openmensa.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
