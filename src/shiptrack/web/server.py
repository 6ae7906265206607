#!/usr/bin/env python
"""
Shipment tracking server: admin API, public lookup and dashboard.
"""

import logging

from ..config import Settings, load_settings
from ..logging import setup_logging
from .app import create_app

logger = logging.getLogger(__name__)


def run_server(settings: Settings = None, host: str = None, port: int = None, debug: bool = None):
    """Configure logging and run the development server."""
    settings = settings or load_settings()
    setup_logging(settings=settings)

    app = create_app(settings)

    host = host or settings.server.host
    port = port or settings.server.port
    debug = settings.debug if debug is None else debug

    logger.info(f"Starting shiptrack on {host}:{port}")
    logger.info(f"Dashboard: http://{host}:{port}/admin/dashboard")
    logger.info(f"Health Check: http://{host}:{port}/health")

    app.run(host=host, port=port, debug=debug)


if __name__ == '__main__':
    run_server()
