"""
The Supervisor package.
Manages the lifecycle of the player process.

This package contains the central Supervisor class and its helper modules,
which together handle launching, waiting on, killing and relaunching the
player, as well as startup validation and service installation.
"""
from .supervisor import Supervisor, SupervisorState
from .waiting import WakeReason, wait_first
from .backoff import Backoff

__all__ = ['Supervisor', 'SupervisorState', 'WakeReason', 'wait_first', 'Backoff']
