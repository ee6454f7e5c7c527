"""WSGI entrypoint for Flask CLI.

This file exists only to make running the app unambiguous.

Usage:
  flask --app wsgi run
  flask --app wsgi db upgrade
  flask --app wsgi create-super-admin --email admin@example.com

Set APP_ENV=production to load ProductionConfig.
"""
import os

from barangay_connect.app import create_app
from barangay_connect.config import DevelopmentConfig, ProductionConfig

app = create_app(ProductionConfig if os.environ.get("APP_ENV") == "production" else DevelopmentConfig)
