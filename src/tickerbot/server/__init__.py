"""HTTP API for the mention views."""

from .api import create_app

__all__ = ["create_app"]
