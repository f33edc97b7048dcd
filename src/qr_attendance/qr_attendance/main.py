from __future__ import annotations

import importlib
import logging
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .checkin.controller import register as register_checkin
from .common.http import register_error_handlers
from .container import Container, build_container
from .database.bootstrap import apply_schema, ensure_default_policy, ensure_demo_users, list_tables
from .employees.controller import register as register_employees
from .payroll.controller import register as register_payroll
from .policy.controller import register as register_policy

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None, settings: Any = None) -> Flask:
    """Application factory.

    Passing ``container`` skips every database step, which is how the tests
    run the HTTP layer on in-memory repositories.
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    if settings is None:
        settings_module = get_settings_module()
        settings = importlib.import_module(settings_module)
    else:
        settings_module = getattr(settings, "__name__", type(settings).__name__)

    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["GEOLOCATION_TIMEOUT_SECONDS"] = int(getattr(settings, "GEOLOCATION_TIMEOUT_SECONDS", 10))

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

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config)
            ensure_default_policy(db_config)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            ensure_default_policy(db_config)
            ensure_demo_users(db_config)
            logger.info("demo seed ready")

        container = build_container(db_config=db_config, settings=settings)

    app.extensions["qr_attendance"] = container

    register_error_handlers(app)
    register_employees(app, container)
    register_checkin(app, container)
    register_policy(app, container)
    register_payroll(app, container)

    return app
