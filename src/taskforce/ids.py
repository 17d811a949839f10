"""Sequential ticket id allocation."""

from collections.abc import Iterable

TICKET_PREFIX = "ticket-"
MIN_DIGITS = 3


def parse_ticket_number(ticket_id: str) -> int:
    """
    Numeric suffix of a ticket id.

    Returns 0 for ids without the expected prefix or with a non-numeric
    suffix, so a stray document never blocks allocation.
    """
    if not ticket_id.startswith(TICKET_PREFIX):
        return 0
    try:
        return max(int(ticket_id[len(TICKET_PREFIX):]), 0)
    except ValueError:
        return 0


def format_ticket_id(number: int) -> str:
    """Format a counter as "ticket-NNN" (wider once past 999)."""
    return f"{TICKET_PREFIX}{number:0{MIN_DIGITS}d}"


def next_ticket_id(existing_ids: Iterable[str], watermark: int = 0) -> str:
    """
    Next id after the highest numbered id in the store or the watermark.

    Args:
        existing_ids: Ids of every ticket currently stored
        watermark: Highest number ever allocated, so ids freed by deletion
            are not handed out again

    Returns:
        "ticket-{max + 1}", zero-padded to three digits

    Example:
        next_ticket_id(["ticket-001", "ticket-007"])  # "ticket-008"
        next_ticket_id([])                            # "ticket-001"
        next_ticket_id(["ticket-002"], watermark=5)   # "ticket-006"
    """
    highest = max((parse_ticket_number(i) for i in existing_ids), default=0)
    highest = max(highest, watermark)
    return format_ticket_id(highest + 1)
