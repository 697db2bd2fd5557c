"""
dualstore - store one uploaded file in S3 and IPFS at the same time.

Usage:
    from dualstore import UploadOrchestrator, FilePayload, ObjectStoreDestination, Settings

    settings = Settings.from_env()
    async with UploadOrchestrator.from_settings(settings) as orchestrator:
        result = await orchestrator.upload(
            FilePayload.from_path(path),
            ObjectStoreDestination(bucket=settings.s3_bucket, key="uploads/file.png"),
        )

    result.status      # UploadStatus.FULL_SUCCESS / PARTIAL_SUCCESS / FULL_FAILURE
    result.s3_url      # None if the object store failed
    result.ipfs_hash   # None if the content store failed
    result.errors()    # {"s3": {"kind": ..., "message": ...}} for failed backends

HTTP service:
    from dualstore.api import create_app
    app = create_app(settings)
"""
__version__ = "0.1.0"

from .errors import (
    BackendError,
    ConfigError,
    DualStoreError,
    ErrorKind,
    PayloadReadError,
    PayloadTooLargeError,
    PreconditionError,
)
from .models import (
    BackendOutcome,
    FilePayload,
    ObjectStoreDestination,
    UploadConfig,
    UploadResult,
    UploadStatus,
    UploadTarget,
)
from .orchestrator import UploadOrchestrator
from .settings import Settings

__all__ = [
    # Main
    "UploadOrchestrator",
    "Settings",
    # Models
    "BackendOutcome",
    "FilePayload",
    "ObjectStoreDestination",
    "UploadConfig",
    "UploadResult",
    "UploadStatus",
    "UploadTarget",
    # Errors
    "BackendError",
    "ConfigError",
    "DualStoreError",
    "ErrorKind",
    "PayloadReadError",
    "PayloadTooLargeError",
    "PreconditionError",
]
