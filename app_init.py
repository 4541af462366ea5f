"""
Application Initialization Module
Initializes the Flask app with configuration, logging, security, record
services, API blueprints and health checks
"""
import os
from flask import Flask
from config import get_config
from logging_config import setup_logging
from security import setup_security
from health_checks import register_health_checks
from services.registry import build_services
import logging

logger = logging.getLogger(__name__)


def create_app(config_class=None):
    """
    Application factory

    Args:
        config_class: Configuration class to load (defaults to get_config())

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    app.config.from_object(config_class or get_config())

    setup_logging(app)

    logger.info("=" * 60)
    logger.info("🚀 Initializing Fieldbook CRM")
    logger.info("=" * 60)
    logger.info(f"Environment: {os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    # Setup security (CORS, headers, error handlers)
    setup_security(app, app.config)

    # Repositories and signing services for every record kind
    initialize_record_services(app)

    from app import register_blueprints
    register_blueprints(app)

    register_health_checks(app)

    logger.info("✅ Application initialization complete")
    logger.info("=" * 60)

    return app


def initialize_record_services(app):
    """
    Build the record services for the configured storage mode and attach
    them to the app

    Args:
        app: Flask application instance

    Returns:
        RecordServices instance
    """
    services = build_services(app.config)
    app.extensions['record_services'] = services
    logger.info(f"✅ Record storage: {services.storage_mode}")
    return services
