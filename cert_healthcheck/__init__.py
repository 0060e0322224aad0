"""Certification dropdown health check across the deployed registration sites."""

__version__ = "0.3.0"
