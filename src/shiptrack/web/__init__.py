"""HTTP API for shiptrack."""

from .app import create_app

__all__ = ["create_app"]
