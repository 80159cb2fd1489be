"""
Logging handlers for the application.
This module provides logging handlers that ship log records to
remote backends.
"""

from .loki import LokiHandler

__all__ = ["LokiHandler"]
