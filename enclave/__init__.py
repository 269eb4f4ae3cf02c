"""Enclave campaign manager."""

__version__ = "0.4.0"
