from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    # Session errors
    SESSION_NOT_FOUND = 'SESSION_NOT_FOUND'
    SESSION_FULL = 'SESSION_FULL'
    SESSION_INACTIVE = 'SESSION_INACTIVE'
    INVALID_JOIN_CODE = 'INVALID_JOIN_CODE'

    # Player errors
    NICKNAME_TAKEN = 'NICKNAME_TAKEN'
    INVALID_NICKNAME = 'INVALID_NICKNAME'
    INVALID_PASSWORD = 'INVALID_PASSWORD'
    PLAYER_NOT_FOUND = 'PLAYER_NOT_FOUND'
    PLAYER_NOT_CONNECTED = 'PLAYER_NOT_CONNECTED'
    AUTHENTICATION_FAILED = 'AUTHENTICATION_FAILED'

    # Game state errors
    INVALID_STATE_TRANSITION = 'INVALID_STATE_TRANSITION'
    BUZZER_DISABLED = 'BUZZER_DISABLED'
    NO_BUZZER_PRESSES = 'NO_BUZZER_PRESSES'
    ALREADY_BUZZED = 'ALREADY_BUZZED'
    GAME_ALREADY_ENDED = 'GAME_ALREADY_ENDED'
    CANNOT_START_NEW_GAME = 'CANNOT_START_NEW_GAME'

    # GM errors
    INVALID_GM_PASSWORD = 'INVALID_GM_PASSWORD'
    SESSION_PASSWORD_MISMATCH = 'SESSION_PASSWORD_MISMATCH'
    NO_SESSIONS_FOUND = 'NO_SESSIONS_FOUND'

    # Payload errors
    INVALID_INPUT = 'INVALID_INPUT'
    MISSING_REQUIRED_FIELD = 'MISSING_REQUIRED_FIELD'

    INTERNAL_ERROR = 'INTERNAL_ERROR'


ERROR_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.SESSION_NOT_FOUND: 'Game session not found. Please check the join code.',
    ErrorCode.SESSION_FULL: 'This session is full.',
    ErrorCode.SESSION_INACTIVE: 'This session has ended.',
    ErrorCode.INVALID_JOIN_CODE: 'Invalid join code format.',
    ErrorCode.NICKNAME_TAKEN: 'This nickname is already taken in this session.',
    ErrorCode.INVALID_NICKNAME: 'Nickname must be 1-20 characters, letters, digits and spaces only.',
    ErrorCode.INVALID_PASSWORD: 'Password must be 4-20 characters.',
    ErrorCode.PLAYER_NOT_FOUND: 'Player not found in this session.',
    ErrorCode.PLAYER_NOT_CONNECTED: 'You are not connected to this session.',
    ErrorCode.AUTHENTICATION_FAILED: 'Incorrect nickname or password.',
    ErrorCode.INVALID_STATE_TRANSITION: 'Cannot perform this action in the current game state.',
    ErrorCode.BUZZER_DISABLED: 'Buzzer is disabled. Wait for the next question.',
    ErrorCode.NO_BUZZER_PRESSES: 'Cannot move to scoring - at least one player must buzz.',
    ErrorCode.ALREADY_BUZZED: 'You have already buzzed for this question.',
    ErrorCode.GAME_ALREADY_ENDED: 'Game has already ended.',
    ErrorCode.CANNOT_START_NEW_GAME: 'Cannot start new game - current game has not ended.',
    ErrorCode.INVALID_GM_PASSWORD: 'Invalid game master password.',
    ErrorCode.SESSION_PASSWORD_MISMATCH: 'Incorrect GM password for this session.',
    ErrorCode.NO_SESSIONS_FOUND: 'No active sessions found for this password.',
    ErrorCode.INVALID_INPUT: 'Invalid input data.',
    ErrorCode.MISSING_REQUIRED_FIELD: 'Required field is missing.',
    ErrorCode.INTERNAL_ERROR: 'An internal error occurred. Please try again.',
}


class GameError(Exception):
    """A rejected operation.

    ``detail`` is for server logs only; clients receive the stable code and
    the canned message for it.
    """

    def __init__(self, code: ErrorCode, detail: Optional[str] = None):
        super().__init__(detail or code.value)
        self.code = code
        self.detail = detail

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self.code]

    def to_ack(self) -> Dict[str, Any]:
        return {'success': False, 'error': self.message, 'code': self.code.value}
