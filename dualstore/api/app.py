"""FastAPI application factory."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .. import __version__
from ..errors import DualStoreError
from ..orchestrator import UploadOrchestrator
from ..settings import Settings
from .responses import dualstore_exception_handler
from .routes import router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[UploadOrchestrator] = None,
) -> FastAPI:
    """
    Create the HTTP app.

    Args:
        settings: Service settings (default: Settings.from_env())
        orchestrator: Pre-built orchestrator; when given, the caller owns its lifecycle

    Raises:
        ConfigError: if settings are loaded from the environment and are invalid
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "orchestrator", None) is None:
            owned = UploadOrchestrator.from_settings(settings)
            app.state.orchestrator = owned
            logger.info(
                "Orchestrator ready: bucket=%s ipfs=%s timeout=%ss",
                settings.s3_bucket, settings.ipfs_api_url, settings.upload_timeout,
            )
        try:
            yield
        finally:
            if owned is not None:
                await owned.aclose()
                app.state.orchestrator = None

    app = FastAPI(
        title="dualstore",
        version=__version__,
        description="Store uploaded files in S3 and IPFS",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.add_exception_handler(DualStoreError, dualstore_exception_handler)
    app.include_router(router)
    return app
