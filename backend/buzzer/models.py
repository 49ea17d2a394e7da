from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from threading import RLock
from typing import Dict, FrozenSet, List, Optional

from buzzer.errors import ErrorCode, GameError


def now_ms() -> int:
    return int(time.time() * 1000)


class GameState(str, Enum):
    WAITING = 'waiting'
    ACTIVE = 'active'
    SCORING = 'scoring'
    ENDED = 'ended'


# ENDED -> WAITING is only taken by "start new game".
ALLOWED_TRANSITIONS: Dict[GameState, FrozenSet[GameState]] = {
    GameState.WAITING: frozenset({GameState.ACTIVE, GameState.ENDED}),
    GameState.ACTIVE: frozenset({GameState.SCORING, GameState.WAITING, GameState.ENDED}),
    GameState.SCORING: frozenset({GameState.WAITING, GameState.ENDED}),
    GameState.ENDED: frozenset({GameState.WAITING}),
}


class BuzzerSound(str, Enum):
    PARTY_HORN = 'party_horn'
    BURPS = 'burps'
    FARTS = 'farts'
    SCREAMS = 'screams'
    SNORE = 'snore'
    MOAN = 'moan'

    @classmethod
    def parse(cls, value) -> Optional['BuzzerSound']:
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class Player:
    player_id: str
    join_code: str
    nickname: str
    password_hash: str = field(repr=False)
    score: int = 0
    buzzer_sound: BuzzerSound = BuzzerSound.PARTY_HORN
    connection_id: Optional[str] = None
    is_connected: bool = True
    last_buzz_timestamp: Optional[int] = None
    created_at: int = field(default_factory=now_ms)

    @classmethod
    def create(cls, join_code: str, nickname: str, password_hash: str, connection_id: Optional[str]) -> 'Player':
        return cls(
            player_id=str(uuid.uuid4()),
            join_code=join_code,
            nickname=nickname,
            password_hash=password_hash,
            connection_id=connection_id,
            is_connected=connection_id is not None,
        )

    def matches_nickname(self, nickname: str) -> bool:
        return self.nickname.lower() == nickname.lower()

    def reconnect(self, connection_id: str) -> None:
        self.connection_id = connection_id
        self.is_connected = True

    def disconnect(self) -> None:
        self.connection_id = None
        self.is_connected = False

    def reset_buzzer(self) -> None:
        self.last_buzz_timestamp = None

    def add_points(self, points: int) -> int:
        self.score += points
        return self.score

    def to_dict(self):
        return {
            'playerId': self.player_id,
            'nickname': self.nickname,
            'score': self.score,
            'buzzerSound': self.buzzer_sound.value,
            'isConnected': self.is_connected,
            'lastBuzzTimestamp': self.last_buzz_timestamp,
        }


@dataclass(frozen=True)
class BuzzPress:
    player_id: str
    player_name: str
    timestamp: int
    is_first: bool

    def to_dict(self):
        return {
            'playerId': self.player_id,
            'playerName': self.player_name,
            'timestamp': self.timestamp,
            'isFirst': self.is_first,
        }


@dataclass
class Question:
    question_number: int
    started_at: int = field(default_factory=now_ms)
    buzzer_presses: List[BuzzPress] = field(default_factory=list)
    first_buzzer_id: Optional[str] = None

    def has_buzzed(self, player_id: str) -> bool:
        return any(press.player_id == player_id for press in self.buzzer_presses)

    def add_press(self, player_id: str, player_name: str, timestamp: Optional[int] = None) -> BuzzPress:
        """Append a press; the first one appended wins regardless of timestamps."""
        is_first = not self.buzzer_presses
        press = BuzzPress(
            player_id=player_id,
            player_name=player_name,
            timestamp=timestamp if timestamp is not None else now_ms(),
            is_first=is_first,
        )
        self.buzzer_presses.append(press)
        if is_first:
            self.first_buzzer_id = player_id
        return press


@dataclass(frozen=True)
class LeaderboardEntry:
    player_id: str
    nickname: str
    score: int
    rank: int
    is_tied: bool

    def to_dict(self):
        return {
            'playerId': self.player_id,
            'nickname': self.nickname,
            'score': self.score,
            'rank': self.rank,
            'isTied': self.is_tied,
        }


@dataclass(frozen=True)
class LeaderboardData:
    entries: List[LeaderboardEntry]
    total_players: int
    timestamp: int
    session_id: str

    def to_dict(self):
        return {
            'entries': [entry.to_dict() for entry in self.entries],
            'totalPlayers': self.total_players,
            'timestamp': self.timestamp,
            'sessionId': self.session_id,
        }


@dataclass
class Session:
    join_code: str
    gm_password_hash: str = field(repr=False)
    players: Dict[str, Player] = field(default_factory=dict)
    game_state: GameState = GameState.WAITING
    current_question: Optional[Question] = None
    last_question_number: int = 0
    created_at: int = field(default_factory=now_ms)
    last_activity: int = field(default_factory=now_ms)
    is_active: bool = True
    leaderboard: Optional[LeaderboardData] = None
    # Serialises state reads/writes for this session across Socket.IO workers.
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)

    @property
    def current_question_number(self) -> int:
        return self.current_question.question_number if self.current_question else 0

    @property
    def connected_player_count(self) -> int:
        return sum(1 for p in self.players.values() if p.is_connected)

    def has_space_for_player(self, max_players: int) -> bool:
        return len(self.players) < max_players

    def is_nickname_taken(self, nickname: str) -> bool:
        return any(p.matches_nickname(nickname) for p in self.players.values())

    def find_player_by_nickname(self, nickname: str) -> Optional[Player]:
        for player in self.players.values():
            if player.matches_nickname(nickname):
                return player
        return None

    def add_player(self, player: Player) -> None:
        self.players[player.player_id] = player

    def touch(self, timestamp: Optional[int] = None) -> None:
        self.last_activity = timestamp if timestamp is not None else now_ms()

    def transition_to(self, new_state: GameState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.game_state]:
            raise GameError(
                ErrorCode.INVALID_STATE_TRANSITION,
                f"{self.game_state.value} -> {new_state.value}",
            )
        self.game_state = new_state

    def begin_question(self) -> Question:
        self.transition_to(GameState.ACTIVE)
        self.last_question_number += 1
        self.current_question = Question(question_number=self.last_question_number)
        for player in self.players.values():
            player.reset_buzzer()
        return self.current_question

    def open_scoring(self) -> None:
        self.transition_to(GameState.SCORING)

    def clear_question(self) -> int:
        """Drop the current question and return to WAITING; returns the spent number."""
        number = self.current_question_number
        self.transition_to(GameState.WAITING)
        self.current_question = None
        return number

    def finish_game(self, leaderboard: LeaderboardData) -> None:
        self.transition_to(GameState.ENDED)
        self.current_question = None
        self.leaderboard = leaderboard

    def reset_for_new_game(self) -> None:
        self.transition_to(GameState.WAITING)
        self.leaderboard = None
        for player in self.players.values():
            player.score = 0
            player.reset_buzzer()

    def to_dict(self):
        return {
            'joinCode': self.join_code,
            'players': [p.to_dict() for p in self.players.values()],
            'gameState': self.game_state.value,
            'currentQuestionNumber': self.current_question_number,
            'createdAt': self.created_at,
            'lastActivity': self.last_activity,
            'isActive': self.is_active,
            'leaderboard': self.leaderboard.to_dict() if self.leaderboard else None,
        }

    def to_metadata(self):
        return {
            'joinCode': self.join_code,
            'playerCount': len(self.players),
            'connectedPlayerCount': self.connected_player_count,
            'createdAt': self.created_at,
            'lastActivity': self.last_activity,
            'gameState': self.game_state.value,
            'questionNumber': self.current_question_number,
        }
