"""
Generator implementations.
"""

from .openai_provider import OpenAIGenerator

__all__ = ["OpenAIGenerator"]
