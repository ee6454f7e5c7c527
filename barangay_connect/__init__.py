"""
Barangay Connect: citizen complaint tracking for barangay units.

The package exposes a Flask application factory in `app.py`; see
`wsgi.py` at the repository root for the entrypoint.
"""

__all__ = []
