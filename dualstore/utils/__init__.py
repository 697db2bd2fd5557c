"""Utility helpers for dualstore."""
from .keys import build_object_key, generate_id, sanitize_filename

__all__ = ["build_object_key", "generate_id", "sanitize_filename"]
