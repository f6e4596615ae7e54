#!/usr/bin/env python3
"""
Registration Payment Notifications Service.

Receives PayFast ITN callbacks for team registration fees and confirms
the matching registration once the notification is verified:
- Signature check against the merchant passphrase
- Confirmation with PayFast's validation endpoint
- Merchant and amount checks
- Idempotent status update in the record store

Usage:
    python main.py

Environment variables:
    See .env.example for all configuration options.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from aiohttp import web

from config import config
from database.db import Database, get_db, close_db
from services.itn_pipeline import ITNPipeline
from services.validation_client import ValidationClient
from api.itn_api import create_app


# Configure logging
def setup_logging():
    """Configure logging based on config."""
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    log_level = getattr(logging, config.logging.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]

    if config.logging.file:
        # Ensure log directory exists
        log_dir = os.path.dirname(config.logging.file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(config.logging.file))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers
    )

    # Reduce noise from third-party libraries
    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


class ITNService:
    """
    Main service orchestrator.

    Coordinates all components of the ITN handler:
    - Database connection
    - PayFast validation client
    - Verification pipeline
    - HTTP server
    """

    def __init__(self):
        self.db: Optional[Database] = None
        self.validation_client: Optional[ValidationClient] = None
        self.pipeline: Optional[ITNPipeline] = None
        self.api_app: Optional[web.Application] = None
        self.api_runner: Optional[web.AppRunner] = None
        self._shutdown_event = asyncio.Event()
        self._shutdown_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start all services."""
        logger.info("=" * 60)
        logger.info(f"Starting {config.service.name}")
        logger.info("=" * 60)

        # Validate configuration
        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ValueError("Invalid configuration")

        if not config.payfast.passphrase:
            logger.warning("PAYFAST_PASSPHRASE not set, signatures are checked unsalted")

        # Initialize database
        logger.info("Initializing database...")
        self.db = await get_db()
        await self.db.init_schema()

        # PayFast validation client
        self.validation_client = ValidationClient()
        await self.validation_client.start()

        self.pipeline = ITNPipeline(
            db=self.db,
            validation_client=self.validation_client
        )

        # Start API server
        logger.info("Starting API server...")
        self.api_app = create_app(self.pipeline)

        self.api_runner = web.AppRunner(self.api_app)
        await self.api_runner.setup()

        site = web.TCPSite(
            self.api_runner,
            config.api.host,
            config.api.port
        )
        await site.start()

        logger.info("=" * 60)
        logger.info("Service started successfully!")
        logger.info(
            f"ITN endpoint at http://{config.api.host}:{config.api.port}{config.api.itn_path}"
        )
        logger.info(f"PayFast mode: {'sandbox' if config.payfast.sandbox else 'production'}")
        logger.info("=" * 60)

    async def stop(self) -> None:
        """Stop all services gracefully."""
        logger.info("Initiating graceful shutdown...")

        # Stop accepting new requests
        if self.api_runner:
            await self.api_runner.cleanup()

        if self.validation_client:
            await self.validation_client.stop()

        # Close database
        await close_db()

        logger.info("Shutdown complete")
        self._shutdown_event.set()

    async def run(self) -> None:
        """Run the service until shutdown signal."""
        await self.start()

        # Wait for shutdown signal
        await self._shutdown_event.wait()

    def request_shutdown(self) -> None:
        """Request service shutdown."""
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self.stop())


def handle_signal(service: ITNService, sig: signal.Signals) -> None:
    """Handle shutdown signals."""
    logger.info(f"Received signal {sig.name}, initiating shutdown...")
    service.request_shutdown()


async def main() -> None:
    """Main entry point."""
    setup_logging()

    service = ITNService()

    # Set up signal handlers
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda s=sig: handle_signal(service, s)
        )

    try:
        await service.run()
    except Exception as e:
        logger.error(f"Service error: {e}", exc_info=True)
        await service.stop()
        sys.exit(1)


if __name__ == '__main__':
    asyncio.run(main())
