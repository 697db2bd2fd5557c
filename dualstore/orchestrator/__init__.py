"""Orchestrator package - coordinates dual-backend uploads."""
from .core import UploadOrchestrator
from .dual_upload import DualUploadHandler
from .payload import BufferedPayload, materialize

__all__ = ["UploadOrchestrator", "DualUploadHandler", "BufferedPayload", "materialize"]
