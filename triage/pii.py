"""
PII scrubbing for analytics snippets.

Masks contact details and identifiers before any part of a user message is
stored. Patterns cover international formats plus Thai phone numbers, Thai
national ids, LINE ids and Thai titles/addresses.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Tuple

# Order matters: e-mail before LINE id, Thai phone before the generic phone rule
PII_PATTERNS: List[Tuple[str, Pattern, str]] = [
    ("email", re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    ("thai_phone", re.compile(r"\b0[0-9]{8,9}\b"), "[PHONE]"),
    ("phone", re.compile(r"\b(?!0[0-9]{8,9}\b)\d{6,12}\b"), "[PHONE]"),
    ("url", re.compile(r"https?://\S+"), "[URL]"),
    ("thai_id", re.compile(r"\b\d-\d{4}-\d{5}-\d{2}-\d\b|\b\d{13}\b"), "[ID]"),
    ("line_id", re.compile(r"@[a-zA-Z0-9._-]+"), "[LINE_ID]"),
]

THAI_NAME_PATTERNS: List[Pattern] = [
    re.compile(r"(คุณ|นาย|นางสาว|นาง|ดร\.|ศ\.|รศ\.|ผศ\.)\s*[ก-๙]+"),
]

THAI_ADDRESS_PATTERNS: List[Pattern] = [
    re.compile(r"\d+/\d+\s*หมู่\s*\d+"),
    re.compile(r"ซอย\s*[ก-๙a-zA-Z0-9 ]+"),
    re.compile(r"ถนน\s*[ก-๙a-zA-Z0-9 ]+"),
    re.compile(r"ตำบล\s*[ก-๙]+"),
    re.compile(r"อำเภอ\s*[ก-๙]+"),
    re.compile(r"จังหวัด\s*[ก-๙]+"),
]


@dataclass
class ScrubResult:
    """Scrubbed text plus the names of the patterns that fired."""
    text: str
    found_patterns: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.found_patterns


def scrub_pii(text: Optional[str]) -> ScrubResult:
    """
    Mask PII in a piece of text.

    Args:
        text: Raw user text; None and non-strings give an empty result

    Returns:
        ScrubResult with the masked, stripped text
    """
    if not text or not isinstance(text, str):
        return ScrubResult(text="")

    scrubbed = text
    found: List[str] = []

    for name, pattern, token in PII_PATTERNS:
        scrubbed, count = pattern.subn(token, scrubbed)
        if count:
            found.append(name)

    for index, pattern in enumerate(THAI_NAME_PATTERNS):
        scrubbed, count = pattern.subn("[NAME]", scrubbed)
        if count:
            found.append(f"thai_name_{index}")

    for index, pattern in enumerate(THAI_ADDRESS_PATTERNS):
        scrubbed, count = pattern.subn("[ADDRESS]", scrubbed)
        if count:
            found.append(f"thai_address_{index}")

    return ScrubResult(text=scrubbed.strip(), found_patterns=found)


def safe_snippet(text: Optional[str], max_length: int = 160) -> str:
    """Scrubbed text cut to at most ``max_length`` characters."""
    return scrub_pii(text).text[:max_length]


def is_text_safe_for_logging(text: Optional[str]) -> bool:
    return scrub_pii(text).is_clean
