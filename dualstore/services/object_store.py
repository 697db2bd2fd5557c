"""
Object Store Service - Single Responsibility: put payloads into S3.

Wraps a boto3 S3 client. boto3 is blocking, so each put runs in a worker
thread and the event loop stays free for the sibling IPFS upload.
"""
import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from ..errors import BackendError
from ..models import ObjectStoreDestination
from ..protocols import IObjectStore, PayloadView

logger = logging.getLogger(__name__)

# S3 error codes worth retrying later; everything else is permanent
TRANSIENT_ERROR_CODES = {
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
    "InternalError",
    "ServiceUnavailable",
    "503",
    "500",
}

_CONNECTION_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)


def classify_boto_error(exc: Exception) -> BackendError:
    """Map a botocore exception onto a transient or permanent BackendError."""
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = str(error.get("Code", ""))
        message = error.get("Message") or str(exc)
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if code in TRANSIENT_ERROR_CODES or (isinstance(status, int) and status >= 500):
            return BackendError.transient(f"S3 {code}: {message}", code=code)
        return BackendError.permanent(f"S3 {code}: {message}", code=code)

    if isinstance(exc, _CONNECTION_ERRORS):
        return BackendError.transient(f"S3 connection error: {exc}")
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return BackendError.permanent(f"S3 credentials error: {exc}")
    return BackendError.permanent(f"S3 operation failed: {exc}")


class S3ObjectStore(IObjectStore):
    """
    S3-compatible object store adapter.

    Usage:
        store = S3ObjectStore(region="us-east-1")
        url = await store.put(payload, ObjectStoreDestination("bucket", "uploads/a.png"))
    """

    def __init__(
        self,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        client: Any = None,
    ):
        """
        Initialize object store.

        Args:
            region: AWS region (boto3 default chain if None)
            endpoint_url: Custom endpoint for S3-compatible stores (MinIO, etc.)
            access_key_id: Explicit credentials (boto3 default chain if None)
            secret_access_key: Explicit credentials
            client: Pre-built boto3 S3 client (mainly for tests)
        """
        self._endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        if client is None:
            session = boto3.session.Session(region_name=region) if region else boto3.session.Session()
            client = session.client(
                "s3",
                endpoint_url=self._endpoint_url,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
            )
        self._client = client

    def url_for(self, destination: ObjectStoreDestination) -> str:
        """Public URL of a stored object."""
        if self._endpoint_url:
            return f"{self._endpoint_url}/{destination.bucket}/{destination.key}"
        return f"https://{destination.bucket}.s3.amazonaws.com/{destination.key}"

    async def put(self, payload: PayloadView, destination: ObjectStoreDestination) -> str:
        """
        Upload payload to S3.

        Returns:
            URL of the stored object

        Raises:
            BackendError: classified S3 failure
        """
        await asyncio.to_thread(self._put_object, payload, destination)
        url = self.url_for(destination)
        logger.debug("Stored %d bytes at %s", payload.size, url)
        return url

    def _put_object(self, payload: PayloadView, destination: ObjectStoreDestination) -> None:
        extra = {}
        if payload.content_type:
            extra["ContentType"] = payload.content_type
        try:
            with payload.open() as body:
                self._client.put_object(
                    Bucket=destination.bucket,
                    Key=destination.key,
                    Body=body,
                    ContentLength=payload.size,
                    **extra,
                )
        except (ClientError, BotoCoreError) as e:
            raise classify_boto_error(e) from e

    async def aclose(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            await asyncio.to_thread(close)
