"""Settings shared by every environment; env modules override selectively."""

import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "pos_backoffice"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

INVOICE_PREFIX = os.getenv("INVOICE_PREFIX", "INV-")
STOCK_THRESHOLD = int(os.getenv("STOCK_THRESHOLD", "10"))
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))
MAX_EXPORT_ROWS = int(os.getenv("MAX_EXPORT_ROWS", "10000"))

# Apply database/schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
# Also create the demo admin and branch logins
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
