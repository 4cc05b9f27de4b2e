"""REST API package."""

from expense_tracker.api.routes import create_app

__all__ = ["create_app"]
