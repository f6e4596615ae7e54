"""
PayFast ITN API.

Exposes the notify_url endpoint PayFast posts ITNs to, plus a health check.
"""

import logging
from typing import Optional

from aiohttp import web

from config import config
from models.outcome import Rejection
from services.ingress import extract_source_ip, parse_notification
from services.itn_pipeline import ITNPipeline

logger = logging.getLogger(__name__)


class ITNAPI:
    """
    HTTP surface of the ITN pipeline.

    Endpoints:
    - POST {itn_path} - Receive a PayFast ITN
    - GET /api/health - Health check
    """

    def __init__(self, pipeline: ITNPipeline, itn_path: Optional[str] = None):
        """
        Initialize the API.

        Args:
            pipeline: Verification pipeline ITNs are handed to
            itn_path: Route for ITNs. Uses config if not provided.
        """
        self.pipeline = pipeline
        self.itn_path = itn_path or config.api.itn_path

    def setup_routes(self, app: web.Application) -> None:
        """
        Set up API routes.

        Args:
            app: aiohttp web application
        """
        app.router.add_get('/api/health', self.health_check)
        # All methods, so non-POST gets our plain-text 405
        app.router.add_route('*', self.itn_path, self.handle_itn)

    async def handle_itn(self, request: web.Request) -> web.Response:
        """
        Receive a PayFast ITN.

        Responds 200 "OK" once the ITN is applied or acknowledged, 400 with a
        short reason when it is rejected, 500 on a server fault. Never lets
        an exception escape.
        """
        if request.method != 'POST':
            rejection = Rejection.TRANSPORT_REJECTED
            logger.warning(f"ITN endpoint called with {request.method}")
            return web.Response(text=rejection.reason, status=rejection.http_status)

        try:
            source_ip = extract_source_ip(request.headers)
            body = await request.text()
            notification = parse_notification(body)

            outcome = await self.pipeline.process(notification, source_ip)

        except Exception as e:
            logger.error(f"ITN processing error: {e}", exc_info=True)
            return web.Response(text="Server Error", status=500)

        if outcome.rejection and outcome.rejection.is_server_fault():
            logger.error(f"ITN failed with server fault: {outcome.rejection.value}")

        return web.Response(text=outcome.body, status=outcome.http_status)

    async def health_check(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({
            "status": "healthy",
            "service": config.service.name,
            "sandbox": self.pipeline.validation_client.sandbox
        })


def create_app(pipeline: ITNPipeline, itn_path: Optional[str] = None) -> web.Application:
    """
    Create and configure the aiohttp web application.

    Args:
        pipeline: ITN verification pipeline
        itn_path: Route for ITNs. Uses config if not provided.

    Returns:
        Configured aiohttp Application
    """
    app = web.Application()

    # Create API handler
    api = ITNAPI(pipeline=pipeline, itn_path=itn_path)

    # Setup routes
    api.setup_routes(app)

    # Error handling middleware
    @web.middleware
    async def error_middleware(request, handler):
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except Exception as e:
            logger.error(f"Unhandled error: {e}", exc_info=True)
            return web.Response(text="Server Error", status=500)

    app.middlewares.append(error_middleware)

    return app
