import re

from buzzer.utils.join_codes import JOIN_CODE_ALPHABET, JOIN_CODE_LENGTH

NICKNAME_MIN_LENGTH = 1
NICKNAME_MAX_LENGTH = 20
PASSWORD_MIN_LENGTH = 4
PASSWORD_MAX_LENGTH = 20
SCORE_DELTA_LIMIT = 1000

_NICKNAME_PATTERN = re.compile(r'[a-zA-Z0-9 ]+')
_JOIN_CODE_PATTERN = re.compile(f'[{JOIN_CODE_ALPHABET}]{{{JOIN_CODE_LENGTH}}}')


def normalize_join_code(code) -> str:
    if not isinstance(code, str):
        return ''
    return code.strip().upper()


def is_valid_join_code(code) -> bool:
    return isinstance(code, str) and _JOIN_CODE_PATTERN.fullmatch(code) is not None


def sanitize_nickname(nickname) -> str:
    if not isinstance(nickname, str):
        return ''
    return nickname.strip()


def is_valid_nickname(nickname) -> bool:
    if not isinstance(nickname, str):
        return False
    if not NICKNAME_MIN_LENGTH <= len(nickname) <= NICKNAME_MAX_LENGTH:
        return False
    return _NICKNAME_PATTERN.fullmatch(nickname) is not None


def is_valid_password(password) -> bool:
    return isinstance(password, str) and PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH


def is_valid_score_points(points, limit: int = SCORE_DELTA_LIMIT) -> bool:
    # bool is an int subclass; True is not a score.
    if isinstance(points, bool) or not isinstance(points, int):
        return False
    return -limit <= points <= limit
