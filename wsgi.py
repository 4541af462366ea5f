"""
WSGI Entry Point for Gunicorn

Gunicorn can be configured to use either:
  - wsgi:app
  - app:app (via app/__init__.py, which loads this module lazily)

The configuration class is selected by FLASK_ENV (see config.get_config).
"""

from app_init import create_app

app = create_app()


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(app.config.get('PORT', 5000)))
