"""Application settings."""

import os
from pathlib import Path

# Logging
LOG_LEVEL = os.getenv("CREMA_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("CREMA_LOG_FILE") or None

# API (live mode)
API_URL = os.getenv("CREMA_API_URL", "http://localhost:9010")
API_TIMEOUT = 60
MAX_CONCURRENT = 20
RETRY_ATTEMPTS = int(os.getenv("CREMA_RETRY_ATTEMPTS", "1"))

# Static snapshot (cache mode)
STATIC_URL = os.getenv("CREMA_STATIC_URL", "http://localhost:8000")
CACHE_DIR = os.getenv("CREMA_CACHE_DIR", "data")
SNAPSHOT_FILE = os.getenv("CREMA_SNAPSHOT_FILE", "dashboard_data.json")
CACHE_TTL = float(os.getenv("CREMA_CACHE_TTL", "3600"))
MODE = os.getenv("CREMA_MODE", "cache")

# Decryption
DEFAULT_ITERATIONS = 100_000
API_TOKEN_ENV = "CREMA_API_TOKEN"
SECRET_RETENTION = os.getenv("CREMA_SECRET_RETENTION", "session")
SECRET_FILE = Path(os.getenv("CREMA_SECRET_FILE", "~/.crema/secret")).expanduser()
