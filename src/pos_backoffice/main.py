from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .common.log import configure_logging
from .common.web import register_error_handlers
from .config import get_settings_module
from .container import Container, build_container
from .core.constants import DEFAULT_INVOICE_PREFIX, DEFAULT_PAGE_SIZE, DEFAULT_STOCK_THRESHOLD, MAX_EXPORT_ROWS
from .database.bootstrap import apply_schema, ensure_demo_users, list_tables
from .employees.controller import register as register_employees
from .inventory.controller import register as register_inventory
from .payroll.controller import register as register_payroll
from .sales.controller import register as register_sales
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the Flask app; pass ``container`` to skip MySQL wiring (tests)."""
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            ensure_demo_users(db_config)

        container = build_container(
            db_config=db_config,
            invoice_prefix=getattr(settings, "INVOICE_PREFIX", DEFAULT_INVOICE_PREFIX),
            stock_threshold=int(getattr(settings, "STOCK_THRESHOLD", DEFAULT_STOCK_THRESHOLD)),
            page_size=int(getattr(settings, "DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE)),
            max_export_rows=int(getattr(settings, "MAX_EXPORT_ROWS", MAX_EXPORT_ROWS)),
        )

    register_error_handlers(app)
    register_users(app, container)
    register_employees(app, container)
    register_payroll(app, container)
    register_inventory(app, container)
    register_sales(app, container)

    return app
