import os


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated, or "*"
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:3000')
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3001'))
    # Players per session
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '5'))
    # Legacy single-password mode: when set, every session must be created with it.
    GM_PASSWORD = os.environ.get('GM_PASSWORD', '')
    # Inactivity sweep (seconds)
    SESSION_CLEANUP_INTERVAL_SEC = int(os.environ.get('SESSION_CLEANUP_INTERVAL_SEC', '600'))
    SESSION_INACTIVE_THRESHOLD_SEC = int(os.environ.get('SESSION_INACTIVE_THRESHOLD_SEC', '7200'))
    BCRYPT_LOG_ROUNDS = int(os.environ.get('BCRYPT_LOG_ROUNDS', '10'))
    JOIN_CODE_MAX_ATTEMPTS = int(os.environ.get('JOIN_CODE_MAX_ATTEMPTS', '10'))
    SCORE_DELTA_LIMIT = int(os.environ.get('SCORE_DELTA_LIMIT', '1000'))


def validate_config(config, logger) -> None:
    max_players = int(config.get('MAX_PLAYERS', 5))
    if max_players < 1:
        raise ValueError('MAX_PLAYERS must be at least 1')
    if max_players > 100:
        logger.warning(f"[config] MAX_PLAYERS={max_players} is very high")
    if config.get('GM_PASSWORD'):
        logger.info("[config] legacy GM_PASSWORD mode enabled")
    logger.info(
        f"[config] max_players={max_players} cleanup_interval={config.get('SESSION_CLEANUP_INTERVAL_SEC')}s "
        f"inactive_threshold={config.get('SESSION_INACTIVE_THRESHOLD_SEC')}s"
    )
