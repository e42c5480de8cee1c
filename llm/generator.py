"""
Generator protocol for the Jirung elder-care assistant.

Any text generator the chat pipeline can call. A failed call raises
GenerationError and the pipeline falls back to the static catalog.
"""

import re
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, runtime_checkable

# Appended by the model when it thinks a human should take over
HANDOFF_MARKER = "[HANDOFF]"
_MARKER_RE = re.compile(re.escape(HANDOFF_MARKER), re.IGNORECASE)


class GenerationError(Exception):
    """The generator could not produce a reply."""


@dataclass(frozen=True)
class GeneratorReply:
    text: str
    needs_handoff: bool = False


@runtime_checkable
class Generator(Protocol):
    """Protocol for reply generation."""

    async def complete(self, prompt: str, system: Optional[str] = None) -> GeneratorReply:
        """Generate a reply; raise GenerationError on failure."""
        ...


def strip_handoff_marker(text: str) -> Tuple[str, bool]:
    """Remove the handoff marker; report whether it was present."""
    if not _MARKER_RE.search(text):
        return text.strip(), False
    return _MARKER_RE.sub("", text).strip(), True
