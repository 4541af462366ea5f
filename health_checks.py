"""
Health Check & Monitoring Endpoints
Liveness, readiness and basic process metrics for the deployment platform
"""
import os
import sys
import time
import psutil
from datetime import datetime, timezone
from typing import Dict, Any
from flask import Blueprint, jsonify, current_app
import logging

from services.record_store import RECORD_KINDS

logger = logging.getLogger(__name__)

SERVICE_NAME = 'fieldbook-crm'
SERVICE_VERSION = '1.0.0'

# Create Blueprint for health check routes
health_bp = Blueprint('health', __name__)

# Track application start time
START_TIME = time.time()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_system_metrics() -> Dict[str, Any]:
    """
    Get basic process metrics

    Returns:
        Dictionary of system metrics (empty when psutil cannot read them)
    """
    try:
        process = psutil.Process()

        return {
            'cpu_percent': process.cpu_percent(interval=0.1),
            'memory_mb': process.memory_info().rss / 1024 / 1024,
            'memory_percent': process.memory_percent(),
            'threads': process.num_threads(),
        }
    except psutil.Error as e:
        logger.warning(f"Failed to get system metrics: {e}")
        return {}


def get_uptime() -> Dict[str, Any]:
    uptime_seconds = time.time() - START_TIME

    return {
        'uptime_seconds': round(uptime_seconds, 2),
        'uptime_minutes': round(uptime_seconds / 60, 2),
        'uptime_hours': round(uptime_seconds / 3600, 2),
        'started_at': datetime.fromtimestamp(START_TIME, timezone.utc).isoformat()
    }


def check_storage(app) -> Dict[str, Any]:
    """
    Check that every record kind has a repository

    Memory mode also reports the record count per kind; remote mode only
    reports whether the record API is configured, so readiness never calls out.

    Args:
        app: Flask application instance

    Returns:
        Dictionary with the storage mode, per-kind checks and overall health
    """
    services = app.extensions.get('record_services')
    if services is None:
        return {'mode': None, 'kinds': {}, 'healthy': False}

    kinds = {}
    for kind in RECORD_KINDS:
        repository = services.repositories.get(kind)
        check = {'available': repository is not None}
        if repository is not None and services.storage_mode == 'memory':
            check['records'] = repository.count()
        kinds[kind] = check

    healthy = all(check['available'] for check in kinds.values())
    if services.storage_mode == 'remote':
        configured = all(app.config.get(key) for key in (
            'RECORD_API_URL', 'RECORD_API_PROJECT_ID', 'RECORD_API_PUBLIC_KEY'
        ))
        healthy = healthy and configured

    return {'mode': services.storage_mode, 'kinds': kinds, 'healthy': healthy}


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint
    Returns 200 if application is running
    """
    return jsonify({
        'status': 'healthy',
        'timestamp': _timestamp(),
        'service': SERVICE_NAME
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """
    Readiness probe endpoint
    Returns 200 when record storage is wired and configured, 503 otherwise
    """
    storage = check_storage(current_app)
    is_ready = storage['healthy']

    response = {
        'status': 'ready' if is_ready else 'not_ready',
        'timestamp': _timestamp(),
        'checks': {
            'storage': storage,
        }
    }

    return jsonify(response), 200 if is_ready else 503


@health_bp.route('/metrics', methods=['GET'])
def metrics():
    """
    Basic metrics endpoint
    Returns process metrics and storage statistics
    """
    response = {
        'timestamp': _timestamp(),
        'service': SERVICE_NAME,
        'version': SERVICE_VERSION,
        'environment': os.environ.get('FLASK_ENV', 'production'),
        'uptime': get_uptime(),
        'system': get_system_metrics(),
        'storage': check_storage(current_app),
        'python_version': sys.version.split()[0]
    }

    return jsonify(response), 200


@health_bp.route('/ping', methods=['GET'])
def ping():
    return 'pong', 200


def register_health_checks(app):
    """
    Register health check blueprint with Flask app

    Args:
        app: Flask application instance
    """
    app.register_blueprint(health_bp, url_prefix='/api')
    logger.info("Health check endpoints registered")
    logger.info("Available endpoints: /api/health, /api/ready, /api/metrics, /api/ping")
