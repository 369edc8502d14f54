"""
Text Templates

Renders MemoryRecords into the text forms used for embedding, synthesis
context and plain display.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from .memory_record import MemoryRecord


CONTEXT_SEPARATOR = "\n\n---\n\n"

CONTEXT_TEMPLATE = """[Record: {title} | Date: {date}]
Summary: {summary}
Text: {text}"""

DISPLAY_TEMPLATE = """### {title} [{id}]
**Category**: {category} | **Importance**: {importance}/10 | **Date**: {date}

{summary}
"""


def format_date(timestamp_ms: int) -> str:
    """Format an epoch-ms timestamp like 'Sat Oct 17 2026'"""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%a %b %d %Y")


def render_document_text(record: "MemoryRecord") -> str:
    """Text embedded for a record (DOCUMENT mode)"""
    return f"{record.title} {record.summary}"


def render_search_haystack(record: "MemoryRecord") -> str:
    """Lowercase text searched by the lexical scorer"""
    category = record.category.value if record.category else ""
    return f"{record.title or ''} {record.summary or ''} {category} {record.original_text or ''}".lower()


def render_context_block(record: "MemoryRecord") -> str:
    """Single record formatted for the synthesis prompt"""
    return CONTEXT_TEMPLATE.format(
        title=record.title or "Untitled",
        date=format_date(record.timestamp),
        summary=record.summary or "",
        text=record.original_text or "",
    )


def render_context(records: List["MemoryRecord"]) -> str:
    """All records formatted for the synthesis prompt"""
    return CONTEXT_SEPARATOR.join(render_context_block(r) for r in records)


def render_display_text(record: "MemoryRecord") -> str:
    """Human-readable rendering of a record"""
    alerts = ""
    if record.privacy_alerts:
        alerts = "\n**Privacy alerts**:\n" + "\n".join(f"  - {a}" for a in record.privacy_alerts) + "\n"
    return DISPLAY_TEMPLATE.format(
        title=record.title or "Untitled",
        id=record.id,
        category=record.category.value,
        importance=record.importance,
        date=format_date(record.timestamp),
        summary=record.summary or record.original_text,
    ) + alerts
