"""Game domain services: session access, the question loop and the roster.

This package holds the session state machine and should be called from the
Socket.IO handlers, keeping transport concerns separated from core game
mechanics.
"""

from .base import GameSettings, SessionService
from .flow import GameFlow
from .leaderboard import calculate_leaderboard
from .roster import Roster
from .sessions import SessionAdmin

__all__ = [
    'GameFlow',
    'GameSettings',
    'Roster',
    'SessionAdmin',
    'SessionService',
    'calculate_leaderboard',
]
