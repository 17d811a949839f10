"""
Activity log codec.

Logs are one flat Markdown-like document per ticket. Each entry is a
self-delimited block:

    ## 🔵 CLAIMED — 2025-01-15T14:20:11.015Z
    **Agent:** backend-agent
    **Message:** Ticket claimed and work started.
    **Details:**
    optional, possibly multi-line
    ---
    (blank line)

Encoding is used for persistence. Decoding is display-only: it tags each
line with a structural kind and is never parsed back into entries.
"""

import re
from dataclasses import dataclass

from taskforce.types import LogType, utc_now

LOG_GLYPHS: dict[str, str] = {
    LogType.CREATED.value: "🟢",
    LogType.CLAIMED.value: "🔵",
    LogType.UPDATE.value: "🟡",
    LogType.BLOCKED.value: "🔴",
    LogType.COMPLETED.value: "✅",
    LogType.NOTE.value: "📝",
}
DEFAULT_GLYPH = "📝"

HEADING_PREFIX = "## "
RULE = "---"

# Example: **Agent:** backend-agent
LABEL_PATTERN = re.compile(r"^\*\*([^*]+):\*\*\s?(.*)$")


def build_log_entry(
    log_type: LogType | str,
    agent: str,
    message: str,
    details: str | None = None,
    timestamp: str | None = None,
) -> str:
    """
    Render one log entry block.

    Args:
        log_type: Entry type; unknown types get the note glyph
        agent: Actor responsible for the entry
        message: One-line message
        details: Optional multi-line details
        timestamp: ISO-8601 timestamp, defaults to now

    Returns:
        Block text ending with the rule line and a blank line
    """
    type_name = log_type.value if isinstance(log_type, LogType) else str(log_type)
    glyph = LOG_GLYPHS.get(type_name, DEFAULT_GLYPH)
    lines = [
        f"{HEADING_PREFIX}{glyph} {type_name.upper()} — {timestamp or utc_now()}",
        f"**Agent:** {agent}",
        f"**Message:** {message}",
    ]
    if details:
        lines.append(f"**Details:**\n{details}")
    lines.extend([RULE, ""])
    return "\n".join(lines) + "\n"


@dataclass
class LogLine:
    """
    A display-tagged log line.

    Attributes:
        kind: "heading", "label", "rule", "blank" or "text"
        text: The line content (heading text without the ## marker)
        label: Label name for "label" lines (e.g. "Agent")
        value: Text after the label for "label" lines
    """

    kind: str
    text: str
    label: str | None = None
    value: str | None = None


def parse_log_line(line: str) -> LogLine:
    """Tag a single log line. Unrecognized lines come back as plain text."""
    stripped = line.strip()
    if not stripped:
        return LogLine(kind="blank", text="")
    if stripped == RULE:
        return LogLine(kind="rule", text=stripped)
    if line.startswith(HEADING_PREFIX):
        return LogLine(kind="heading", text=line[len(HEADING_PREFIX):])
    match = LABEL_PATTERN.match(line)
    if match:
        return LogLine(kind="label", text=line, label=match.group(1), value=match.group(2))
    return LogLine(kind="text", text=line)


def parse_log(text: str) -> list[LogLine]:
    """Tag every line of a log document, preserving order."""
    if not text:
        return []
    return [parse_log_line(line) for line in text.splitlines()]


def split_entries(text: str) -> list[str]:
    """
    Split a log document into entry blocks.

    A block starts at a heading line. Text before the first heading (which
    a well-formed log never has) is returned as its own block.
    """
    blocks: list[str] = []
    current: list[str] = []
    for line in text.splitlines(keepends=True):
        if line.startswith(HEADING_PREFIX) and current:
            blocks.append("".join(current))
            current = []
        current.append(line)
    if current and "".join(current).strip():
        blocks.append("".join(current))
    return blocks
