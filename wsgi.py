"""
WSGI entry point and Flask-Migrate target.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi seed-template-defaults
    gunicorn wsgi:app
"""

from template_governance import create_app

app = create_app()
