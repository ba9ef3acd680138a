"""
FastAPI application factory.
Sets up the upload API with lifespan events for storage and logging.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from httpupload import __version__
from httpupload.api.router import api_router
from httpupload.auth.signature import SignatureVerifier
from httpupload.config import Settings, get_settings
from httpupload.middleware.metrics_middleware import MetricsMiddleware
from httpupload.storage.write_once import WriteOnceStore
from httpupload.utils.logging import configure_logging, log_server_started
from httpupload.utils.metrics_server import start_metrics_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: configure logging, create the storage directory, start the
      metrics exporter when a port is configured
    - Shutdown: stop the metrics exporter and close its socket
    """
    settings: Settings = app.state.settings

    configure_logging('httpupload', settings.log_level)

    settings.check()

    metrics_server = None
    if settings.metrics_port is not None:
        metrics_server = start_metrics_server(settings.metrics_port)
    app.state.metrics_server = metrics_server

    log_server_started(
        logger,
        listen_address=settings.listen_address,
        storage_path=str(settings.storage_path),
        environment=settings.environment,
    )

    yield

    if metrics_server is not None:
        metrics_server.shutdown()
        metrics_server.server_close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the upload application.

    The secret and storage root are captured here, every request shares the
    same verifier and store.

    Args:
        settings: Configuration, loaded from the environment when omitted
    """
    if settings is None:
        settings = get_settings()

    # Every path may name a stored file, so no docs routes
    app = FastAPI(
        title="HTTP Upload",
        description="Storage backend for XMPP external HTTP uploads",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.settings = settings
    app.state.verifier = SignatureVerifier(settings.secret.get_secret_value())
    app.state.store = WriteOnceStore(settings.storage_path)

    app.add_middleware(MetricsMiddleware)

    app.include_router(api_router)

    return app
