import os


def _flag(name, default='0'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def _origins(value):
    if value.strip() == '*':
        return '*'
    return [o.strip() for o in value.split(',') if o.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3002'))
    DEBUG = _flag('DEBUG')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    # Any origin may connect unless narrowed here (comma-separated list)
    CORS_ALLOWED_ORIGINS = _origins(os.environ.get('CORS_ALLOWED_ORIGINS', '*'))
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Pause between the final board update and the game-over banner (ms)
    GAME_OVER_DELAY_MS = int(os.environ.get('GAME_OVER_DELAY_MS', '300'))
    # Drop a pending game-over if its room was reset or closed before it fires
    SUPPRESS_STALE_GAME_OVER = _flag('SUPPRESS_STALE_GAME_OVER')
