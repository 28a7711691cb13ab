import os

from .base import *  # noqa: F401,F403

SECRET_KEY = "test-secret-key"
DEBUG = False
TESTING = True

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "pos_backoffice_test"),
}

AUTO_INIT_DB = False
AUTO_SEED_DB = False
