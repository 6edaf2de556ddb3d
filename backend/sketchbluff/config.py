import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO async mode; empty picks a platform default in create_app()
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Game
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "2"))
    SESSION_CODE_LENGTH = int(os.environ.get("SESSION_CODE_LENGTH", "6"))
    DRAWING_DURATION_SEC = int(os.environ.get("DRAWING_DURATION_SEC", "300"))
    VOTING_DURATION_SEC = int(os.environ.get("VOTING_DURATION_SEC", "120"))
    GUESSING_DURATION_SEC = int(os.environ.get("GUESSING_DURATION_SEC", "180"))
    RESULTS_DURATION_SEC = int(os.environ.get("RESULTS_DURATION_SEC", "30"))

    # Sessions with nobody on the roster are removed after this long
    EMPTY_SESSION_TTL_SEC = int(os.environ.get("EMPTY_SESSION_TTL_SEC", "10"))
    # Background sweep interval for expired empty sessions; 0 disables the sweep
    SESSION_SWEEP_SEC = float(os.environ.get("SESSION_SWEEP_SEC", "5"))
