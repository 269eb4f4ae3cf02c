"""Web interface for the Enclave campaign manager."""

from .app import create_app

__all__ = ["create_app"]
