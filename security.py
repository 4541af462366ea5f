"""
Security Utilities & Middleware
CORS, response headers, JSON error handlers and request logging
"""
import os
import secrets
from typing import Dict, Any, List
from flask import Flask, request, jsonify, Response
from flask_cors import CORS
import logging

from services.errors import InvalidToken, NotFound, RecordApiError, ValidationFailed

logger = logging.getLogger(__name__)

# Paths skipped by request logging
QUIET_PATHS = ('/api/health', '/api/ping')


class SecurityConfig:
    """Secret key validation"""

    WEAK_KEYS = ('dev', 'test', 'secret', 'password', '12345', 'change-me')

    @staticmethod
    def generate_secret_key() -> str:
        return secrets.token_hex(32)

    @staticmethod
    def validate_secret_key(secret_key: str) -> bool:
        """
        Validate that secret key is sufficiently secure

        Args:
            secret_key: Secret key to validate

        Returns:
            True if key is secure, False otherwise
        """
        if not secret_key:
            return False

        if len(secret_key) < 32:
            logger.warning("Secret key is too short (minimum 32 characters)")
            return False

        if any(weak in secret_key.lower() for weak in SecurityConfig.WEAK_KEYS):
            logger.warning("Secret key appears to be weak or default")
            return False

        return True

    @staticmethod
    def ensure_secret_key(config: Dict[str, Any]) -> str:
        """
        Return the configured secret key, or a generated one when it is weak

        Args:
            config: Application configuration mapping

        Returns:
            Secure secret key
        """
        secret_key = config.get('SECRET_KEY')

        if SecurityConfig.validate_secret_key(secret_key):
            return secret_key

        if config.get('TESTING'):
            return secret_key or SecurityConfig.generate_secret_key()

        if os.environ.get('FLASK_ENV') == 'production':
            logger.error("No secure SECRET_KEY in production! Set SECRET_KEY for persistence.")

        secret_key = SecurityConfig.generate_secret_key()
        logger.warning(f"Generated new secret key (length: {len(secret_key)})")
        return secret_key


def setup_security_headers(app: Flask):
    """
    Add security headers to all responses

    Args:
        app: Flask application instance
    """
    @app.after_request
    def add_security_headers(response: Response) -> Response:
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'no-referrer'

        # Signing links carry a bearer token in the path
        if request.path.startswith('/sign/'):
            response.headers['Cache-Control'] = 'no-store'

        if not app.debug and not app.testing:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        # JSON only, nothing to load
        response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none'"
        response.headers['Permissions-Policy'] = 'geolocation=(), microphone=(), camera=()'

        return response

    logger.info("Security headers configured")


def setup_cors(app: Flask, config: Dict[str, Any]):
    """
    Configure CORS for the dashboard front end

    Args:
        app: Flask application instance
        config: Application configuration mapping
    """
    cors_origins = config.get('CORS_ORIGINS', ['*'])
    cors_methods = config.get('CORS_METHODS', ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS'])
    cors_headers = config.get('CORS_ALLOW_HEADERS', ['Content-Type', 'Authorization'])

    if not app.debug and not app.testing and '*' in cors_origins:
        logger.warning("⚠️  Using wildcard CORS in production! Set CORS_ORIGINS environment variable.")

    CORS(
        app,
        origins=cors_origins,
        methods=cors_methods,
        allow_headers=cors_headers,
        supports_credentials=True,
        max_age=3600
    )

    logger.info(f"CORS configured: origins={cors_origins}")


def sanitize_error_response(error: Exception, include_details: bool = False) -> Dict[str, Any]:
    """
    Generic 500 body that does not leak internals

    Args:
        error: Exception object
        include_details: Whether to include detailed error info (dev only)
    """
    error_response = {
        'success': False,
        'error': 'Internal Server Error',
        'message': 'An error occurred while processing your request'
    }

    if include_details:
        error_response['details'] = str(error)
        error_response['type'] = type(error).__name__

    return error_response


def _error_body(error: str, message: str, **extra) -> Dict[str, Any]:
    body = {'success': False, 'error': error, 'message': message}
    body.update(extra)
    return body


def setup_error_handlers(app: Flask):
    """
    Register JSON error handlers for HTTP errors and record errors

    Args:
        app: Flask application instance
    """
    include_details = app.debug

    @app.errorhandler(NotFound)
    def record_not_found(error: NotFound):
        logger.info(f"Not found: {error.message}")
        return jsonify(_error_body('Not Found', error.message, kind=error.kind)), 404

    @app.errorhandler(InvalidToken)
    def invalid_token(error: InvalidToken):
        return jsonify(_error_body('Invalid Link', error.message, kind=error.kind)), 404

    @app.errorhandler(ValidationFailed)
    def validation_failed(error: ValidationFailed):
        logger.info(f"Validation failed: {error.message}")
        return jsonify(_error_body(
            'Validation Error', error.message, kind=error.kind, errors=error.errors
        )), 422

    @app.errorhandler(RecordApiError)
    def record_api_error(error: RecordApiError):
        logger.error(f"Record API error ({error.kind}): {error.message}")
        return jsonify(_error_body('Bad Gateway', error.message, kind=error.kind)), 502

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify(_error_body(
            'Bad Request',
            getattr(error, 'description', None) or 'The request could not be understood'
        )), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify(_error_body('Not Found', 'The requested resource was not found')), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify(_error_body(
            'Method Not Allowed', 'The method is not allowed for the requested URL'
        )), 405

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify(_error_body('Payload Too Large', 'The request is too large')), 413

    @app.errorhandler(500)
    def internal_server_error(error):
        logger.error(f"Internal server error: {error}", exc_info=True)
        return jsonify(sanitize_error_response(error, include_details)), 500

    logger.info("Error handlers registered")


def setup_request_logging(app: Flask):
    """
    Request/response logging

    Args:
        app: Flask application instance
    """
    @app.before_request
    def log_request():
        if request.path in QUIET_PATHS:
            return

        logger.info(
            f"Request: {request.method} {request.path} "
            f"from {request.remote_addr}"
        )

    @app.after_request
    def log_response(response: Response) -> Response:
        if request.path in QUIET_PATHS:
            return response

        logger.info(
            f"Response: {request.method} {request.path} "
            f"status={response.status_code} "
            f"size={response.content_length}"
        )

        return response

    logger.info("Request logging configured")


def required_environment_variables(config: Dict[str, Any]) -> List[str]:
    """Environment variables the configured storage mode needs"""
    required = ['SECRET_KEY']
    if config.get('STORAGE_MODE') == 'remote':
        required += ['RECORD_API_URL', 'RECORD_API_PROJECT_ID', 'RECORD_API_PUBLIC_KEY']
    return required


def validate_environment_variables(required_vars: list, app: Flask) -> bool:
    """
    Validate that required environment variables are set

    Args:
        required_vars: List of required environment variable names
        app: Flask application instance
    """
    missing_vars = [var for var in required_vars if not os.environ.get(var)]

    for var in missing_vars:
        logger.warning(f"Missing environment variable: {var}")

    if missing_vars and not app.debug:
        logger.error(f"Missing required environment variables in production: {missing_vars}")
        logger.error("Application may not function correctly!")

    return not missing_vars


def setup_security(app: Flask, config: Dict[str, Any]):
    """
    Setup all security features for the application

    Args:
        app: Flask application instance
        config: Application configuration mapping
    """
    logger.info("Configuring application security...")

    app.secret_key = SecurityConfig.ensure_secret_key(config)

    setup_cors(app, config)
    setup_security_headers(app)
    setup_error_handlers(app)
    setup_request_logging(app)

    if not app.debug and not app.testing:
        validate_environment_variables(required_environment_variables(config), app)

    logger.info("✅ Security configuration complete")
