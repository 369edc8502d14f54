"""
Privacy Guard

Deterministic regex redaction applied once, at ingestion, before a memory is
sent to the classifier or stored. Patterns run in order; each replaces its
matches with a fixed placeholder.
"""

import re
from typing import List, Optional, Tuple

EMAIL_PLACEHOLDER = "[EMAIL_REDACTED]"
PHONE_PLACEHOLDER = "[PHONE_REDACTED]"
SSN_PLACEHOLDER = "[SSN_REDACTED]"
CARD_PLACEHOLDER = "[CREDIT_CARD_REDACTED]"

# Order matters: later patterns see the output of earlier ones
SENSITIVE_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"), EMAIL_PLACEHOLDER),
    # International and domestic formats, with -, . or space separators
    (re.compile(r"\b(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b"), PHONE_PLACEHOLDER),
    (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), SSN_PLACEHOLDER),
    # Loose 13-16 digit run (credit-card-like)
    (re.compile(r"\b(?:\d[ -]*?){13,16}\b"), CARD_PLACEHOLDER),
]


def redact_with_notes(text: Optional[str]) -> Tuple[str, Optional[str]]:
    """
    Redact sensitive data from text.

    Returns:
        (redacted text, "; "-joined notes such as "Redacted 1 [EMAIL_REDACTED]" or None)
    """
    redacted = text or ""
    redactions = []

    for pattern, placeholder in SENSITIVE_PATTERNS:
        redacted, count = pattern.subn(placeholder, redacted)
        if count:
            redactions.append(f"Redacted {count} {placeholder}")

    notes = "; ".join(redactions) if redactions else None
    return redacted, notes


def mask_pii(text: Optional[str]) -> str:
    """Redact emails, phone numbers, SSNs and card-like digit runs"""
    redacted, _ = redact_with_notes(text)
    return redacted
