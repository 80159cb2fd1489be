"""
Local package for the camplayer application.

This package provides the configuration store, the restart signal shared by
the supervisor and the web UI, and the error types of the core.
"""

from .config import Configuration, ConfigStore
from .restart_signal import RestartSignal

__all__ = ["Configuration", "ConfigStore", "RestartSignal"]
