"""
Reply Generation Module for the Jirung elder-care assistant.

This module handles:
- Generator abstraction (OpenAI)
- Prompt template management
- The chat pipeline: triage, generation or fallback, event logging
"""

from .generator import Generator, GeneratorReply, GenerationError
from .orchestrator import ChatPipeline, ChatRequest, ChatResponse
from .prompt_templates import PromptTemplates

__all__ = [
    "Generator",
    "GeneratorReply",
    "GenerationError",
    "ChatPipeline",
    "ChatRequest",
    "ChatResponse",
    "PromptTemplates",
]
