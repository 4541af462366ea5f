"""
Centralized Logging Configuration
Console plus rotating file output for the API and the record stores
"""
import logging
import logging.handlers
from pathlib import Path


def setup_logging(app):
    """
    Setup application-wide logging with file rotation and console output

    Args:
        app: Flask application instance
    """
    log_level = getattr(logging, app.config['LOG_LEVEL'].upper(), logging.INFO)
    log_format = app.config['LOG_FORMAT']
    log_file = app.config['LOG_FILE']

    log_path = Path(app.config.get('LOG_DIR', 'logs')) / log_file

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Rotating file handler, skipped under tests
    if not app.config.get('TESTING'):
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Quiet chatty third-party loggers
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    app.logger.info(f"Logging initialized at {logging.getLevelName(log_level)} level")
    app.logger.info(f"Log file: {log_path}")

    return root_logger
