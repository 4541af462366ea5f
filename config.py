"""
Centralized Configuration for Fieldbook CRM
Manages environment-specific settings, storage backend selection, and signing links.
"""
import os


class Config:
    """Base configuration with defaults"""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(32).hex()
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2MB, JSON bodies only
    PORT = int(os.environ.get('PORT', '5000'))

    # CORS Settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']
    CORS_ALLOW_HEADERS = ['Content-Type', 'Authorization', 'X-Requested-With']

    # Storage Settings
    # 'memory' uses the fixture-seeded demo store, 'remote' the record API
    STORAGE_MODE = os.environ.get('STORAGE_MODE', 'memory').lower()
    STORE_LATENCY_MS = int(os.environ.get('STORE_LATENCY_MS', '0'))

    # Remote Record API
    RECORD_API_URL = os.environ.get('RECORD_API_URL')
    RECORD_API_PROJECT_ID = os.environ.get('RECORD_API_PROJECT_ID')
    RECORD_API_PUBLIC_KEY = os.environ.get('RECORD_API_PUBLIC_KEY')
    RECORD_API_TIMEOUT = int(os.environ.get('RECORD_API_TIMEOUT', '30'))  # seconds

    # Signing Links
    SIGNING_BASE_URL = os.environ.get('SIGNING_BASE_URL', 'http://localhost:5000').rstrip('/')
    SIGNING_TOKEN_LENGTH = 32

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'
    # Mimic backend round trips in the demo store
    STORE_LATENCY_MS = int(os.environ.get('STORE_LATENCY_MS', '300'))
    CORS_ORIGINS = ['*']


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    STORAGE_MODE = os.environ.get('STORAGE_MODE', 'remote').lower()
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'https://app.fieldbook.io').split(',')
    SIGNING_BASE_URL = os.environ.get('SIGNING_BASE_URL', 'https://app.fieldbook.io').rstrip('/')
    PREFERRED_URL_SCHEME = 'https'
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    STORAGE_MODE = 'memory'
    STORE_LATENCY_MS = 0
    SIGNING_BASE_URL = 'http://localhost:5000'


# Configuration selector
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config():
    """Get configuration based on FLASK_ENV environment variable"""
    env = os.environ.get('FLASK_ENV', 'development')
    return config_by_name.get(env, DevelopmentConfig)
