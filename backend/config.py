import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///blacksheep.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Lobby limits
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '4'))
    MAX_PLAYERS_LIMIT = int(os.environ.get('MAX_PLAYERS_LIMIT', '10'))
    DEFAULT_MAX_PLAYERS = int(os.environ.get('DEFAULT_MAX_PLAYERS', '6'))
    NAME_MAX_LENGTH = int(os.environ.get('NAME_MAX_LENGTH', '20'))
    # Clues and chat share one length bound
    MESSAGE_MAX_LENGTH = int(os.environ.get('MESSAGE_MAX_LENGTH', '100'))
    # How long the vote results stay on screen before the round resolves (seconds)
    RESULTS_DURATION_SEC = int(os.environ.get('RESULTS_DURATION_SEC', '4'))
    # Compare-and-swap attempts per room update before reporting a conflict
    ROOM_UPDATE_RETRIES = int(os.environ.get('ROOM_UPDATE_RETRIES', '3'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
