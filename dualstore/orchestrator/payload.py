"""
Payload materialization.

The inbound FilePayload is a single-read stream but two backends need to read
it. It is read exactly once here: kept in memory while it fits within
``max_buffered_bytes``, spooled to a temporary file beyond that. Each backend
then gets its own read cursor through BufferedPayload.open().
"""
from __future__ import annotations

import asyncio
import io
import logging
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from blake3 import blake3

from ..errors import DualStoreError, PayloadReadError, PayloadTooLargeError
from ..models import FilePayload, UploadConfig

logger = logging.getLogger(__name__)


class BufferedPayload:
    """
    Immutable, re-readable copy of an uploaded payload.

    Implements the PayloadView protocol. Either ``data`` (memory) or ``path``
    (spool file) is set, never both.
    """

    def __init__(
        self,
        size: int,
        checksum: str,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        data: Optional[bytes] = None,
        path: Optional[Path] = None,
    ):
        self.size = size
        self.checksum = checksum
        self.filename = filename
        self.content_type = content_type
        self._data = data
        self._path = path
        self._closed = False

    @property
    def spooled(self) -> bool:
        return self._path is not None

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def open(self) -> BinaryIO:
        """Open an independent reader over the payload."""
        if self._closed:
            raise PayloadReadError("Payload buffer has already been released")
        if self._path is not None:
            return open(self._path, "rb")
        return io.BytesIO(self._data or b"")

    def read_all(self) -> bytes:
        with self.open() as f:
            return f.read()

    def close(self) -> None:
        """Release the buffer and remove the spool file, if any."""
        if self._closed:
            return
        self._closed = True
        self._data = None
        if self._path is not None:
            try:
                self._path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove spool file %s: %s", self._path, e)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def _open_spool_file(spool_dir: Optional[Path]):
    return tempfile.NamedTemporaryFile(
        mode="wb",
        prefix="dualstore-",
        suffix=".spool",
        dir=str(spool_dir) if spool_dir else None,
        delete=False,
    )


def _discard_spool(spool) -> None:
    if spool is None:
        return
    try:
        spool.close()
    finally:
        Path(spool.name).unlink(missing_ok=True)


async def materialize(payload: FilePayload, config: UploadConfig) -> BufferedPayload:
    """
    Read the payload once and return a re-readable BufferedPayload.

    Raises:
        PayloadTooLargeError: payload exceeds ``config.max_file_size``
        PayloadReadError: the source raised while being read
    """
    limit = config.max_file_size
    if limit is not None and payload.declared_length is not None and payload.declared_length > limit:
        raise PayloadTooLargeError(limit)

    hasher = blake3()
    buffer = bytearray()
    spool = None
    size = 0
    completed = False

    try:
        async for chunk in payload.chunks():
            size += len(chunk)
            if limit is not None and size > limit:
                raise PayloadTooLargeError(limit)
            hasher.update(chunk)

            if spool is None and size > config.max_buffered_bytes:
                spool = await asyncio.to_thread(_open_spool_file, config.spool_dir)
                logger.debug(
                    "Payload %s exceeds %d buffered bytes, spooling to %s",
                    payload.filename, config.max_buffered_bytes, spool.name,
                )
                if buffer:
                    pending = bytes(buffer)
                    buffer.clear()
                    await asyncio.to_thread(spool.write, pending)

            if spool is not None:
                await asyncio.to_thread(spool.write, chunk)
            else:
                buffer.extend(chunk)

        if spool is not None:
            await asyncio.to_thread(spool.close)
        completed = True
    except DualStoreError:
        raise
    except Exception as e:
        raise PayloadReadError(f"Failed to read payload: {e}") from e
    finally:
        if not completed:
            _discard_spool(spool)

    checksum = hasher.hexdigest()
    if spool is not None:
        return BufferedPayload(
            size=size,
            checksum=checksum,
            filename=payload.filename,
            content_type=payload.content_type,
            path=Path(spool.name),
        )

    logger.debug("Payload %s buffered in memory (%d bytes)", payload.filename, size)
    return BufferedPayload(
        size=size,
        checksum=checksum,
        filename=payload.filename,
        content_type=payload.content_type,
        data=bytes(buffer),
    )
