"""
Models for dualstore.

Immutable dataclasses for destinations, per-backend outcomes and the
aggregated upload result. FilePayload is the only mutable model: it wraps a
single-read byte source and refuses to be consumed twice.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

from .errors import ConfigError, ErrorKind, PayloadReadError, PreconditionError

DEFAULT_CHUNK_SIZE = 64 * 1024


class UploadTarget(Enum):
    """Backend role inside a dual upload."""
    OBJECT_STORE = "s3"
    CONTENT_STORE = "ipfs"


class UploadStatus(Enum):
    """Overall classification of a dual upload."""
    FULL_SUCCESS = "full_success"
    PARTIAL_SUCCESS = "partial_success"  # exactly one backend stored the file
    FULL_FAILURE = "full_failure"


@dataclass(frozen=True)
class ObjectStoreDestination:
    """Bucket and key the object store writes to."""
    bucket: str
    key: str

    def validate(self) -> None:
        if not self.bucket or not self.bucket.strip():
            raise PreconditionError("Destination bucket is required")
        if not self.key or not self.key.strip():
            raise PreconditionError("Destination key is required", details={"bucket": self.bucket})
        if self.key.startswith("/"):
            raise PreconditionError(
                f"Destination key must not start with '/': {self.key}",
                details={"bucket": self.bucket, "key": self.key},
            )


@dataclass
class FilePayload:
    """
    Single-read byte source plus optional metadata.

    Created per request by the ingress layer and consumed exactly once by the
    orchestrator. Iterating a second time raises PayloadReadError.
    """
    source: AsyncIterator[bytes]
    filename: Optional[str] = None
    content_type: Optional[str] = None
    declared_length: Optional[int] = None
    _consumed: bool = field(default=False, init=False, repr=False)

    @property
    def consumed(self) -> bool:
        return self._consumed

    async def chunks(self) -> AsyncIterator[bytes]:
        """Yield the payload bytes. Can only be called once."""
        if self._consumed:
            raise PayloadReadError("Payload has already been consumed")
        self._consumed = True
        async for chunk in self.source:
            if chunk:
                yield bytes(chunk)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> "FilePayload":
        async def _gen():
            for start in range(0, len(data), chunk_size):
                yield data[start:start + chunk_size]

        return cls(_gen(), filename=filename, content_type=content_type, declared_length=len(data))

    @classmethod
    def from_reader(
        cls,
        reader: Any,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        declared_length: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> "FilePayload":
        """Wrap any object exposing ``async read(size)`` (e.g. Starlette's UploadFile)."""
        async def _gen():
            while True:
                chunk = await reader.read(chunk_size)
                if not chunk:
                    break
                yield chunk

        return cls(_gen(), filename=filename, content_type=content_type, declared_length=declared_length)

    @classmethod
    def from_path(
        cls,
        path: Path,
        content_type: Optional[str] = None,
        declared_length: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> "FilePayload":
        """
        Stream a local file without blocking the event loop.

        No filesystem call happens here; pass ``declared_length`` when the size
        is already known so oversized files are rejected before reading.
        """
        path = Path(path)

        async def _gen():
            f = await asyncio.to_thread(open, path, "rb")
            try:
                while True:
                    chunk = await asyncio.to_thread(f.read, chunk_size)
                    if not chunk:
                        break
                    yield chunk
            finally:
                await asyncio.to_thread(f.close)

        return cls(
            _gen(),
            filename=path.name,
            content_type=content_type,
            declared_length=declared_length,
        )


@dataclass(frozen=True)
class BackendOutcome:
    """Immutable per-backend result: an identifier or an error."""
    target: UploadTarget
    identifier: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error_kind is None

    @classmethod
    def ok(cls, target: UploadTarget, identifier: str) -> "BackendOutcome":
        return cls(target=target, identifier=identifier)

    @classmethod
    def failure(cls, target: UploadTarget, kind: ErrorKind, message: str) -> "BackendOutcome":
        return cls(target=target, error_kind=kind, message=message)

    def to_error_dict(self) -> Optional[Dict[str, str]]:
        if self.success:
            return None
        return {"kind": self.error_kind.value, "message": self.message or ""}


@dataclass(frozen=True)
class UploadResult:
    """Combined outcome of both backend attempts for a single upload."""
    object_store: BackendOutcome
    content_store: BackendOutcome
    size: int = 0
    checksum: Optional[str] = None  # blake3 hex of the payload
    elapsed: float = 0.0

    def __post_init__(self):
        if self.object_store.target is not UploadTarget.OBJECT_STORE:
            raise ValueError("object_store outcome has the wrong target")
        if self.content_store.target is not UploadTarget.CONTENT_STORE:
            raise ValueError("content_store outcome has the wrong target")

    @classmethod
    def settle(cls, *outcomes: BackendOutcome, size: int = 0,
               checksum: Optional[str] = None, elapsed: float = 0.0) -> "UploadResult":
        """Build a result from both outcomes, accepted in any order."""
        by_target = {outcome.target: outcome for outcome in outcomes}
        if len(outcomes) != 2 or len(by_target) != 2:
            raise ValueError("UploadResult requires exactly one outcome per target")
        return cls(
            object_store=by_target[UploadTarget.OBJECT_STORE],
            content_store=by_target[UploadTarget.CONTENT_STORE],
            size=size,
            checksum=checksum,
            elapsed=elapsed,
        )

    @property
    def outcomes(self) -> tuple:
        return (self.object_store, self.content_store)

    @property
    def status(self) -> UploadStatus:
        succeeded = sum(1 for outcome in self.outcomes if outcome.success)
        if succeeded == 2:
            return UploadStatus.FULL_SUCCESS
        if succeeded == 1:
            return UploadStatus.PARTIAL_SUCCESS
        return UploadStatus.FULL_FAILURE

    @property
    def success(self) -> bool:
        return self.status == UploadStatus.FULL_SUCCESS

    @property
    def s3_url(self) -> Optional[str]:
        return self.object_store.identifier if self.object_store.success else None

    @property
    def ipfs_hash(self) -> Optional[str]:
        return self.content_store.identifier if self.content_store.success else None

    def to_dict(self) -> Dict[str, Any]:
        """
        JSON-ready representation.

        Full success carries only the two identifiers; otherwise the status and
        a per-backend error report are included and missing identifiers are None.
        """
        if self.status == UploadStatus.FULL_SUCCESS:
            return {"s3_url": self.s3_url, "ipfs_hash": self.ipfs_hash}
        return {
            "status": self.status.value,
            "s3_url": self.s3_url,
            "ipfs_hash": self.ipfs_hash,
            "errors": self.errors(),
        }

    def errors(self) -> Dict[str, Dict[str, str]]:
        """Per-backend error report keyed by target name ("s3", "ipfs")."""
        return {
            outcome.target.value: outcome.to_error_dict()
            for outcome in self.outcomes
            if not outcome.success
        }


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for the upload orchestrator."""
    max_buffered_bytes: int = 1024 * 1024
    upload_timeout: float = 60.0
    max_file_size: Optional[int] = 5 * 1024 * 1024  # None disables the limit
    spool_dir: Optional[Path] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def validate(self) -> None:
        if self.max_buffered_bytes < 0:
            raise ConfigError("max_buffered_bytes must be >= 0")
        if self.upload_timeout <= 0:
            raise ConfigError("upload_timeout must be greater than 0")
        if self.max_file_size is not None and self.max_file_size <= 0:
            raise ConfigError("max_file_size must be greater than 0 (or None for no limit)")
        if self.chunk_size <= 0:
            raise ConfigError("chunk_size must be greater than 0")
