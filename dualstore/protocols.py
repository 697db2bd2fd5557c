"""
Protocols (Interfaces) for Dependency Inversion.

Small capability interfaces consumed by the orchestrator. Concrete adapters
(S3, IPFS) and test doubles implement the same shapes.
"""
from typing import BinaryIO, Optional, Protocol, runtime_checkable

from .models import ObjectStoreDestination


@runtime_checkable
class PayloadView(Protocol):
    """Read-only access to a materialized payload."""

    filename: Optional[str]
    content_type: Optional[str]
    size: int

    def open(self) -> BinaryIO:
        """Return a new binary file object with its own read cursor."""
        ...


@runtime_checkable
class IObjectStore(Protocol):
    """Interface for bucket/key addressed object storage."""

    async def put(self, payload: PayloadView, destination: ObjectStoreDestination) -> str:
        """Store payload under destination and return a dereferenceable URL."""
        ...


@runtime_checkable
class IContentStore(Protocol):
    """Interface for content-addressed storage."""

    async def put(self, payload: PayloadView) -> str:
        """Store payload and return the content identifier computed by the store."""
        ...
