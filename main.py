""" main.py: FastAPI application entry point and runtime configuration.

This module builds the ASGI app, mounts the webhook, send, cron and health routers, configures
CORS, and exposes a Prometheus metrics endpoint. The service graph (thread store with its
in-memory fallback, per-thread locks, pending actions, gateway client) is built once by
`core.bootstrap.build_services` and kept on `app.state.services`, so tests can create an app
around their own graph with `create_app(services)`. When executed directly, it starts a
Uvicorn server using host/port values from configuration.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from config import CONFIG
from config.logging_config import get_logger
from core.bootstrap import AppServices, build_services
from version import __version__

# --- Router Imports ---
from api import cron as cron_router
from api import health as health_router
from api import send as send_router
from api import webhook as webhook_router

logger = get_logger(__name__)


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
        logger.info(f"[lifespan] Service started, storage mode: {app.state.services.thread_store.mode}")
        yield
        await app.state.services.aclose()
        logger.info("[lifespan] Service stopped")

    app = FastAPI(title="WhatsApp Agent", version=__version__, lifespan=lifespan)
    app.state.services = services

    # Include routers
    app.include_router(webhook_router.router, prefix="/api", tags=["Webhook"])
    app.include_router(send_router.router, prefix="/api", tags=["Send"])
    app.include_router(cron_router.router, prefix="/api", tags=["Cron"])
    app.include_router(health_router.router, tags=["Health"])

    # Add Prometheus metrics endpoint
    app.mount("/metrics", make_asgi_app())

    # Configure CORS
    allow_origins = CONFIG.get('cors', {}).get('allow_origins', ["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


app = create_app()

# The uvicorn server is used to run the FastAPI application.
if __name__ == '__main__':
    import uvicorn
    logger.info("[__main__] Starting Uvicorn server for main.py\n")
    uvicorn.run(
        app,
        host=CONFIG.get('server', {}).get('host', '0.0.0.0'),
        port=CONFIG.get('server', {}).get('port', 8080)
    )
