"""
Web package for camplayer.

This package contains the control surface: a small Starlette application to
view and change the stream address, its middleware, and the Hypercorn runner
that serves it next to the supervisor.
"""

from .setup import create_app
from .server import ControlSurface

__all__ = ["create_app", "ControlSurface"]
