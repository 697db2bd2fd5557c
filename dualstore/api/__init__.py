"""HTTP ingress for dualstore."""
from .app import create_app

__all__ = ["create_app"]
