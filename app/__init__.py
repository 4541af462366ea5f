"""
Fieldbook CRM - Application Package

- api/: HTTP route handlers (Flask Blueprints)

The app factory lives in app_init.py at the project root; record storage,
signing and dashboard logic live in the top-level services package.
"""

import logging

logger = logging.getLogger(__name__)

from app.api.records import records_bp
from app.api.signing import signing_bp
from app.api.dashboard import dashboard_bp


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(records_bp)
    app.register_blueprint(signing_bp)
    app.register_blueprint(dashboard_bp)
    logger.info("Registered blueprints: records, signing, dashboard")


__all__ = ['register_blueprints', 'records_bp', 'signing_bp', 'dashboard_bp']


# ==============================================================================
# WSGI APP EXPORT FOR GUNICORN
# ==============================================================================
# Allows `gunicorn app:app`. Loaded lazily to avoid a circular import with
# wsgi.py, which imports app_init, which imports this package.
# ==============================================================================

_flask_app = None

def __getattr__(name):
    """Lazy load the Flask app to avoid circular imports."""
    global _flask_app
    if name == 'app':
        if _flask_app is None:
            from wsgi import app as flask_app
            _flask_app = flask_app
        return _flask_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
