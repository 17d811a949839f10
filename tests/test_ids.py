"""Tests for sequential ticket id allocation."""

from taskforce.ids import format_ticket_id, next_ticket_id, parse_ticket_number


class TestParseTicketNumber:
    """Tests for parse_ticket_number()."""

    def test_parses_padded_suffix(self):
        assert parse_ticket_number("ticket-007") == 7

    def test_parses_wide_suffix(self):
        assert parse_ticket_number("ticket-1234") == 1234

    def test_foreign_prefix_is_zero(self):
        assert parse_ticket_number("bug-042") == 0

    def test_non_numeric_suffix_is_zero(self):
        assert parse_ticket_number("ticket-abc") == 0
        assert parse_ticket_number("ticket-") == 0


class TestNextTicketId:
    """Tests for next_ticket_id()."""

    def test_empty_store_starts_at_one(self):
        assert next_ticket_id([]) == "ticket-001"

    def test_uses_highest_not_count(self):
        """Gaps left by deletions are never filled."""
        assert next_ticket_id(["ticket-001", "ticket-007"]) == "ticket-008"

    def test_ignores_malformed_ids(self):
        assert next_ticket_id(["ticket-002", "notes", "ticket-x"]) == "ticket-003"

    def test_watermark_wins_over_listing(self):
        """A deleted highest ticket still counts through the watermark."""
        assert next_ticket_id(["ticket-002"], watermark=5) == "ticket-006"

    def test_listing_wins_over_stale_watermark(self):
        assert next_ticket_id(["ticket-009"], watermark=3) == "ticket-010"

    def test_widens_past_999(self):
        assert next_ticket_id(["ticket-999"]) == "ticket-1000"


def test_format_pads_to_three_digits():
    assert format_ticket_id(1) == "ticket-001"
    assert format_ticket_id(42) == "ticket-042"
