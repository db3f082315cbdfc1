"""
WSGI entry point (e.g. ``gunicorn --chdir api wsgi:app``).
"""

from app import create_app

app = create_app()
