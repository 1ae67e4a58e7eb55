"""
WSGI entry point for the planner API and the Flask-Migrate CLI.

    gunicorn wsgi:app
    FLASK_APP=wsgi flask db upgrade
"""

from planner import create_app

app = create_app()
