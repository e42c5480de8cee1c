"""
OpenAI Generator.
"""

import asyncio
import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from ..generator import GenerationError, GeneratorReply, strip_handoff_marker

logger = logging.getLogger(__name__)


class OpenAIGenerator:
    """
    Generator backed by the OpenAI chat completions API.

    Supports GPT-4o family models.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        timeout_seconds: float = 20.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI generator.

        Args:
            api_key: OpenAI API key
            model_id: Model ID
            max_tokens: Maximum tokens
            temperature: Generation temperature
            timeout_seconds: Upper bound for one completion call
            client: Preconfigured async client
        """
        self._client = client or (AsyncOpenAI(api_key=api_key) if api_key else AsyncOpenAI())
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds

        logger.info(f"OpenAI generator initialized: {model_id}")

    async def complete(self, prompt: str, system: Optional[str] = None) -> GeneratorReply:
        """
        Generate a reply.

        Args:
            prompt: User prompt
            system: System prompt

        Returns:
            GeneratorReply with the handoff marker removed from the text

        Raises:
            GenerationError: on API errors, timeouts or an empty reply
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self.model_id,
                    messages=messages,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"OpenAI generation timed out after {self.timeout_seconds}s")
            raise GenerationError("Generation timed out") from e
        except OpenAIError as e:
            logger.error(f"OpenAI generation failed: {e}")
            raise GenerationError(str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise GenerationError("Empty reply from model")

        text, needs_handoff = strip_handoff_marker(content)
        if not text:
            raise GenerationError("Reply contained only the handoff marker")
        return GeneratorReply(text=text, needs_handoff=needs_handoff)
