"""
WSGI entry point: gunicorn -c VibeTracker/gunicorn_config.py VibeTracker.wsgi:app
"""
from .app import create_app
from .config import Config

app = create_app(Config)
