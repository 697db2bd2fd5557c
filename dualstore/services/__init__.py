"""Backend adapters for dualstore."""
from .content_store import IPFSContentStore
from .object_store import S3ObjectStore, classify_boto_error

__all__ = [
    "IPFSContentStore",
    "S3ObjectStore",
    "classify_boto_error",
]
