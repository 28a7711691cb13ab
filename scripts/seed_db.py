from __future__ import annotations

import importlib

from dotenv import load_dotenv

from pos_backoffice.common.log import configure_logging
from pos_backoffice.config import get_settings_module
from pos_backoffice.database.bootstrap import ensure_demo_users


def main() -> None:
    """Reset the demo logins: admin/admin123 and main-branch/branch123."""
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)

    ensure_demo_users(db_config)
    print(
        "OK: Demo accounts ready -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )


if __name__ == "__main__":
    main()
