import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO (empty = pick automatically)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Storage (empty disables persistence)
    USERS_FILE = os.environ.get("USERS_FILE", "data/users.json")

    # Game
    ROUND_DURATION_MS = int(os.environ.get("ROUND_DURATION_MS", "20000"))
    HIGHLIGHT_MS = int(os.environ.get("HIGHLIGHT_MS", "60000"))
    RATE_LIMIT_MS = int(os.environ.get("RATE_LIMIT_MS", "700"))
    POLL_DURATION_MS = int(os.environ.get("POLL_DURATION_MS", "30000"))
    LEADERBOARD_SIZE = int(os.environ.get("LEADERBOARD_SIZE", "10"))

    # Boosts
    BOOST_ADD_TIME_MS = int(os.environ.get("BOOST_ADD_TIME_MS", "10000"))
    BOOST_PROMPT_MS = int(os.environ.get("BOOST_PROMPT_MS", "30000"))

    # Background sweep (winner highlight expiry, boost hint rotation)
    SWEEP_INTERVAL_SEC = float(os.environ.get("SWEEP_INTERVAL_SEC", "1.0"))
    HINT_MIN_SEC = int(os.environ.get("HINT_MIN_SEC", "90"))
    HINT_MAX_SEC = int(os.environ.get("HINT_MAX_SEC", "120"))
    ENABLE_SCHEDULER_IN_TESTS = False

    # Chat source
    CHAT_CONNECT_TIMEOUT_SEC = float(os.environ.get("CHAT_CONNECT_TIMEOUT_SEC", "15"))
