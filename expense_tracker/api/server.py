"""
API Server Entry Point

Loads settings, configures logging, picks the storage backend once and
serves the Flask app:

    expense-tracker-api
    python -m expense_tracker.api.server
"""

from flask import Flask

from expense_tracker.audit import AuditLogger, configure_logging
from expense_tracker.config import Settings, get_settings
from expense_tracker.services.storage import create_expense_storage
from expense_tracker.api.routes import create_app


def build_app(settings: Settings) -> Flask:
    """Wire settings -> logging -> storage -> app."""
    app_settings = settings.app
    configure_logging(app_settings.log_level, json_logs=app_settings.log_json)

    audit_logger = AuditLogger()
    storage = create_expense_storage(settings.firebase, tz=app_settings.tzinfo)
    audit_logger.log_storage_selected(storage.backend_name)

    return create_app(storage, audit_logger)


def main() -> None:
    settings = get_settings()
    app = build_app(settings)
    app.run(
        host=settings.app.api_host,
        port=settings.app.api_port,
        debug=settings.app.debug_mode,
    )


if __name__ == "__main__":
    main()
