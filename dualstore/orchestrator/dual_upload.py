"""Dual-backend upload handler."""
import asyncio
import logging
from typing import Awaitable, Callable

from ..errors import BackendError, ErrorKind, PayloadReadError, PreconditionError
from ..models import (
    BackendOutcome,
    FilePayload,
    ObjectStoreDestination,
    UploadConfig,
    UploadResult,
    UploadTarget,
)
from ..protocols import IContentStore, IObjectStore
from .payload import materialize

logger = logging.getLogger(__name__)


class DualUploadHandler:
    """
    Stores one payload in the object store and the content store concurrently.

    Backend failures never raise out of upload(); they are reported as
    BackendOutcome failures inside the UploadResult. Only PreconditionError
    (invalid destination, oversized or already consumed payload) is raised,
    and always before any backend call is made.
    """

    def __init__(
        self,
        object_store: IObjectStore,
        content_store: IContentStore,
        config: UploadConfig,
    ):
        """
        Initialize dual upload handler.

        Args:
            object_store: S3-compatible adapter
            content_store: IPFS adapter
            config: UploadConfig
        """
        self._object_store = object_store
        self._content_store = content_store
        self._config = config

    async def upload(
        self,
        payload: FilePayload,
        destination: ObjectStoreDestination,
    ) -> UploadResult:
        """Upload payload to both backends and reconcile the outcomes."""
        if destination is None:
            raise PreconditionError("Object store destination is required")
        destination.validate()
        if payload.consumed:
            raise PreconditionError("Payload has already been consumed")

        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + self._config.upload_timeout

        logger.info(
            "Uploading %s to s3://%s/%s and IPFS",
            payload.filename or "<unnamed>", destination.bucket, destination.key,
        )

        # 1. Read the single-read source once, bounded by the shared deadline
        try:
            async with asyncio.timeout_at(deadline):
                buffered = await materialize(payload, self._config)
        except TimeoutError:
            return self._settle_without_dispatch(
                ErrorKind.TIMEOUT,
                f"Timed out reading payload after {self._config.upload_timeout}s",
                started,
            )
        except PayloadReadError as e:
            return self._settle_without_dispatch(ErrorKind.PAYLOAD_READ, e.message, started)

        try:
            # 2. Dispatch both puts concurrently, each with its own share of the deadline
            object_task = asyncio.create_task(
                self._run_backend(
                    UploadTarget.OBJECT_STORE,
                    lambda: self._object_store.put(buffered, destination),
                    deadline,
                )
            )
            content_task = asyncio.create_task(
                self._run_backend(
                    UploadTarget.CONTENT_STORE,
                    lambda: self._content_store.put(buffered),
                    deadline,
                )
            )

            # 3. Join both unconditionally; _run_backend never raises for backend errors
            outcomes = await asyncio.gather(object_task, content_task)
        finally:
            buffered.close()

        result = UploadResult.settle(
            *outcomes,
            size=buffered.size,
            checksum=buffered.checksum,
            elapsed=loop.time() - started,
        )
        self._log_result(result, destination)
        return result

    async def _run_backend(
        self,
        target: UploadTarget,
        call: Callable[[], Awaitable[str]],
        deadline: float,
    ) -> BackendOutcome:
        """Run one backend put and convert whatever happens into an outcome."""
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            return BackendOutcome.failure(target, ErrorKind.TIMEOUT, "Upload deadline expired before dispatch")

        timeout = asyncio.timeout(remaining)
        try:
            async with timeout:
                identifier = await call()
        except TimeoutError as e:
            if timeout.expired():
                return BackendOutcome.failure(
                    target, ErrorKind.TIMEOUT, f"{target.value} upload deadline expired"
                )
            # Raised by the backend itself, not by the shared deadline
            return BackendOutcome.failure(
                target, ErrorKind.TRANSIENT, f"{target.value} backend timed out: {e}"
            )
        except BackendError as e:
            return BackendOutcome.failure(target, e.kind, e.message)
        except PayloadReadError as e:
            return BackendOutcome.failure(target, ErrorKind.PAYLOAD_READ, e.message)
        except Exception as e:
            logger.exception("Unexpected error from %s backend", target.value)
            return BackendOutcome.failure(target, ErrorKind.UNKNOWN, f"{type(e).__name__}: {e}")

        if not identifier:
            return BackendOutcome.failure(
                target, ErrorKind.PERMANENT, f"{target.value} backend returned an empty identifier"
            )
        return BackendOutcome.ok(target, identifier)

    def _settle_without_dispatch(self, kind: ErrorKind, message: str, started: float) -> UploadResult:
        """Both backends fail the same way when the shared source is unusable."""
        logger.warning("Payload unavailable, no backend called: %s", message)
        return UploadResult.settle(
            BackendOutcome.failure(UploadTarget.OBJECT_STORE, kind, message),
            BackendOutcome.failure(UploadTarget.CONTENT_STORE, kind, message),
            elapsed=asyncio.get_running_loop().time() - started,
        )

    def _log_result(self, result: UploadResult, destination: ObjectStoreDestination) -> None:
        for outcome in result.outcomes:
            if not outcome.success:
                logger.warning(
                    "%s upload failed (%s): %s",
                    outcome.target.value, outcome.error_kind.value, outcome.message,
                )
        logger.info(
            "Upload of %s settled: %s (%d bytes, blake3=%s, %.2fs)",
            destination.key, result.status.value, result.size, result.checksum, result.elapsed,
        )

