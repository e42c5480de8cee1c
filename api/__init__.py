"""
API Module for the Jirung elder-care assistant.

FastAPI application with routes for:
- Chat and triage
- Handoff click tracking
- Admin analytics
"""

from .main import create_app, app

__all__ = ["create_app", "app"]
