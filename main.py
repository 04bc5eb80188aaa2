"""
FastAPI Application Entry Point

Integrates:
  - WhatsApp session lifecycle (started on boot, released on shutdown)
  - /api gateway routes (API-key protected)
  - Health check
  - Middleware for logging & error handling

Run: uvicorn main:app --host 0.0.0.0 --port 3000
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Config
from infra import SessionRuntime, bootstrap_session_runtime
from transport.whatsapp import router as whatsapp_router

# Setup logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _log_unhandled_async_error(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Loop exception handler: log and keep serving."""
    exc = context.get("exception")
    logger.error(f"Unhandled async error: {context.get('message', exc)}", exc_info=exc)


def _internal_error_body(exc: Exception) -> dict:
    body = {"success": False, "error": "Internal server error"}
    if Config.expose_error_details():
        body["details"] = str(exc)
    return body


def create_app(runtime: Optional[SessionRuntime] = None, autostart: bool = True) -> FastAPI:
    """
    Build the gateway application.

    Args:
        runtime: Pre-built session runtime (tests inject one with a stub
            client); bootstrapped from the environment when omitted
        autostart: Start the WhatsApp session during startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan: startup and shutdown handlers.
        """
        session = runtime or bootstrap_session_runtime()
        app.state.session = session

        loop = asyncio.get_running_loop()
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(_log_unhandled_async_error)

        # Startup
        logger.info("=" * 60)
        logger.info(f"{Config.SERVICE_NAME} v{Config.SERVICE_VERSION} starting up...")
        logger.info(f"Environment: {Config.ENVIRONMENT}")
        logger.info(f"Messaging backend: {session.config.messaging_backend}")
        logger.info(f"Authentication: {'enabled' if Config.auth_enabled() else 'disabled'}")
        logger.info("=" * 60)

        start_task = None
        if autostart:
            # Startup does not wait for pairing
            start_task = asyncio.create_task(session.controller.start())

        yield

        # Shutdown
        logger.info("Gateway shutting down...")
        if start_task is not None and not start_task.done():
            start_task.cancel()
        await session.controller.shutdown()
        loop.set_exception_handler(previous_handler)

    app = FastAPI(
        title=Config.SERVICE_NAME,
        description="HTTP gateway to a WhatsApp Web session",
        version=Config.SERVICE_VERSION,
        lifespan=lifespan,
    )
    if runtime is not None:
        app.state.session = runtime

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Middleware for logging
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests."""
        logger.info(f"{request.method} {request.url.path}")
        try:
            response = await call_next(request)
            return response
        except Exception as e:
            logger.error(f"Request error: {str(e)}", exc_info=True)
            return JSONResponse(status_code=500, content=_internal_error_body(e))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            error = "Endpoint not found"
        else:
            error = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": error},
            headers=getattr(exc, "headers", None),
        )

    # Include routers
    app.include_router(whatsapp_router)

    @app.get("/health")
    async def health(request: Request):
        """Liveness probe: 200 whenever the process is up."""
        checker = request.app.state.session.health
        return checker.to_dict(checker.check_live())

    @app.get("/")
    async def root(request: Request):
        """Service banner with connection status."""
        state = request.app.state.session.controller.state
        return {
            "message": f"{Config.SERVICE_NAME} is running",
            "status": "Connected" if state.ready else "Disconnected",
            "authentication": "enabled" if Config.auth_enabled() else "disabled",
            "reconnectAttempts": state.reconnect_attempts,
            "endpoints": {
                "status": "GET /api/whatsapp/status",
                "qr": "GET /api/whatsapp/qr",
                "sendText": "POST /api/whatsapp/send-text",
                "sendImage": "POST /api/whatsapp/send-image",
                "restart": "POST /api/whatsapp/restart",
                "info": "GET /api/info",
                "health": "GET /health",
            },
            "authentication_note": (
                "Protected endpoints require the X-API-Key header"
                if Config.auth_enabled()
                else "No authentication required"
            ),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=Config.PORT,
    )
