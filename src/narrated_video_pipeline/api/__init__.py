"""HTTP interface for the narrated video pipeline."""

from .app import create_app

__all__ = ["create_app"]
