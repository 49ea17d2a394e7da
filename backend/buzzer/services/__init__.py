from dataclasses import dataclass

from buzzer.session_store import SessionStore
from buzzer.services.games import GameFlow, GameSettings, Roster, SessionAdmin
from buzzer.utils.passwords import PasswordHasher


@dataclass
class BuzzerServices:
    """Everything the handlers need, built once per app."""

    store: SessionStore
    sessions: SessionAdmin
    game: GameFlow
    roster: Roster

    @classmethod
    def build(cls, store: SessionStore, gateway, hasher: PasswordHasher, settings: GameSettings) -> 'BuzzerServices':
        return cls(
            store=store,
            sessions=SessionAdmin(store, gateway, hasher, settings),
            game=GameFlow(store, gateway, hasher, settings),
            roster=Roster(store, gateway, hasher, settings),
        )
