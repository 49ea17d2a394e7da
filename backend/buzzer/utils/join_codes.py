import secrets
from typing import Callable

from buzzer.errors import ErrorCode, GameError

# No I, O, 0 or 1: they are easy to misread when a code is shown on screen.
JOIN_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
JOIN_CODE_LENGTH = 6
DEFAULT_MAX_ATTEMPTS = 10


def generate_join_code(length: int = JOIN_CODE_LENGTH) -> str:
    return ''.join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))


def allocate_join_code(
    is_taken: Callable[[str], bool],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    generate: Callable[[], str] = generate_join_code,
) -> str:
    """Return a code for which ``is_taken`` is false, trying at most ``max_attempts`` times."""
    for _ in range(max_attempts):
        code = generate()
        if not is_taken(code):
            return code
    raise GameError(
        ErrorCode.INTERNAL_ERROR,
        f"no free join code after {max_attempts} attempts",
    )
