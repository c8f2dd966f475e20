"""
WSGI Entry Point

Exposes ``application`` (and ``app``) for Gunicorn and runs the Flask development
server when executed directly.

Usage Examples:
    # Production WSGI deployment
    gunicorn --config gunicorn.conf.py "app:application"

    # Development server
    export FLASK_ENV=development
    python app.py

    # Seed the default administrator and sample product
    flask --app app seed-defaults
"""

import os

from storefront.app import create_app


application = create_app(os.getenv('FLASK_ENV'))
app = application


if __name__ == '__main__':
    application.run(
        host=os.getenv('FLASK_HOST', '127.0.0.1'),
        port=int(os.getenv('FLASK_PORT', '8000')),
        debug=application.config.get('DEBUG', False)
    )
