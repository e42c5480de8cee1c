"""
API Routes for the Jirung elder-care assistant.
"""

from . import chat, handoff, admin

__all__ = ["chat", "handoff", "admin"]
