import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    # Comma-separated; '*' allows any origin (mobile clients have none)
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Global reveal of evader positions (ms between reveals, seconds between scans)
    REVEAL_INTERVAL_MS = int(os.environ.get('REVEAL_INTERVAL_MS', '120000'))
    REVEAL_TICK_SEC = float(os.environ.get('REVEAL_TICK_SEC', '1.0'))
    # Capture threshold (meters)
    CATCH_RADIUS_M = float(os.environ.get('CATCH_RADIUS_M', '50'))
    # Bonus areas generated at game start
    BONUS_AREA_COUNT = int(os.environ.get('BONUS_AREA_COUNT', '3'))
    BONUS_AREA_RADIUS_M = float(os.environ.get('BONUS_AREA_RADIUS_M', '25'))
    BONUS_EDGE_MARGIN_M = float(os.environ.get('BONUS_EDGE_MARGIN_M', '50'))
    BONUS_MIN_SEPARATION_M = float(os.environ.get('BONUS_MIN_SEPARATION_M', '100'))
    BONUS_MAX_ATTEMPTS = int(os.environ.get('BONUS_MAX_ATTEMPTS', '50'))
    # How long an evader stays revealed after entering a bonus area (ms)
    BONUS_REVEAL_MS = int(os.environ.get('BONUS_REVEAL_MS', '5000'))
    # Location updates faster than this per player are dropped (ms). 0 disables.
    LOCATION_UPDATE_INTERVAL_MS = int(os.environ.get('LOCATION_UPDATE_INTERVAL_MS', '1000'))
    # Optional: run the reveal loop even when TESTING is set
    ENABLE_SCHEDULER_IN_TESTS = os.environ.get('ENABLE_SCHEDULER_IN_TESTS', '0') == '1'
