"""Game domain services: the table session engine, scoring and timers.

This package contains the pure(ish) rules engine that is driven by socket
handlers and HTTP routes, keeping transport concerns separated from core
game mechanics. Only the scheduler touches Flask/Socket.IO.
"""

from .registry import SessionRegistry
from .session import GameSession

__all__ = ['GameSession', 'SessionRegistry']
