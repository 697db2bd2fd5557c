"""Core orchestrator - entry point for dual-backend uploads."""
import logging
from typing import Optional

from ..models import FilePayload, ObjectStoreDestination, UploadConfig, UploadResult
from ..protocols import IContentStore, IObjectStore
from ..settings import Settings
from .dual_upload import DualUploadHandler

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Orchestrates uploads to the object store and the content store.

    Follows:
    - Dependency Injection (backends and config injected)
    - Single Responsibility (delegates to DualUploadHandler)

    Usage:
        async with UploadOrchestrator.from_settings(settings) as orchestrator:
            result = await orchestrator.upload(payload, destination)

        # With test doubles
        orchestrator = UploadOrchestrator(fake_s3, fake_ipfs, UploadConfig(upload_timeout=1))
    """

    def __init__(
        self,
        object_store: IObjectStore,
        content_store: IContentStore,
        config: Optional[UploadConfig] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            object_store: Object store adapter (S3)
            content_store: Content store adapter (IPFS)
            config: Upload configuration

        Raises:
            ConfigError: if config is invalid
        """
        self._object_store = object_store
        self._content_store = content_store
        self._config = config or UploadConfig()
        self._config.validate()
        self._handler = DualUploadHandler(object_store, content_store, self._config)

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadOrchestrator":
        """Build an orchestrator wired to the real S3 and IPFS adapters."""
        from ..services import IPFSContentStore, S3ObjectStore

        object_store = S3ObjectStore(
            region=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )
        content_store = IPFSContentStore(settings.ipfs_api_url, pin=settings.ipfs_pin)
        return cls(object_store, content_store, settings.upload_config())

    @property
    def config(self) -> UploadConfig:
        return self._config

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        """Close backend adapters that hold connections."""
        for backend in (self._object_store, self._content_store):
            close = getattr(backend, "aclose", None)
            if not callable(close):
                continue
            try:
                await close()
            except Exception as e:
                logger.warning("Error closing %s: %s", type(backend).__name__, e)

    async def upload(
        self,
        payload: FilePayload,
        destination: ObjectStoreDestination,
    ) -> UploadResult:
        """
        Upload one payload to both backends concurrently.

        Returns an UploadResult once both backends have settled. Backend
        failures are reported inside the result, never raised.

        Raises:
            PreconditionError: invalid destination, oversized or consumed payload
        """
        return await self._handler.upload(payload, destination)
