"""
Process initialization.

Logging, service wiring and shutdown.
"""

from .logging import setup_logging

__all__ = ["setup_logging"]
