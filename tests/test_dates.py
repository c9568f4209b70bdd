"""Tests for due-date cursor arithmetic."""

from datetime import date, datetime

import pytest

from loan_ledger.schedule.dates import (
    advance_one_month,
    clamp_due_day,
    first_due_date,
    format_date,
    nth_due_date,
    parse_date,
)


class TestClampDueDay:
    """Test due-day clamping to [1, 28]."""

    @pytest.mark.parametrize(
        ("day", "expected"),
        [(1, 1), (15, 15), (28, 28), (29, 28), (31, 28), (0, 1), (-3, 1), (None, 1)],
    )
    def test_clamp(self, day: int | None, expected: int) -> None:
        assert clamp_due_day(day) == expected


class TestAdvanceOneMonth:
    """Test moving the cursor one calendar month forward."""

    def test_keeps_day_in_long_month(self) -> None:
        assert advance_one_month(date(2024, 1, 28), 28) == date(2024, 2, 28)

    def test_year_rollover(self) -> None:
        assert advance_one_month(date(2023, 12, 15), 15) == date(2024, 1, 15)

    def test_uses_target_day_not_current_day(self) -> None:
        assert advance_one_month(date(2024, 3, 5), 20) == date(2024, 4, 20)

    def test_clamps_to_short_month(self) -> None:
        assert advance_one_month(date(2023, 1, 31), 31) == date(2023, 2, 28)
        assert advance_one_month(date(2024, 1, 31), 31) == date(2024, 2, 29)

    def test_always_lands_in_next_month(self) -> None:
        current = date(2024, 1, 28)
        for _ in range(36):
            following = advance_one_month(current, 28)
            expected_month = current.month % 12 + 1
            assert following.month == expected_month
            assert following.day == 28
            current = following


class TestFirstDueDate:
    """Test the first scheduled due date."""

    def test_due_day_before_start_moves_to_next_month(self) -> None:
        assert first_due_date(date(2024, 3, 20), 5) == date(2024, 4, 5)

    def test_due_day_after_start_stays_in_month(self) -> None:
        assert first_due_date(date(2024, 3, 1), 5) == date(2024, 3, 5)

    def test_due_day_on_start(self) -> None:
        assert first_due_date(date(2024, 3, 5), 5) == date(2024, 3, 5)

    def test_december_start_rolls_year(self) -> None:
        assert first_due_date(date(2023, 12, 20), 10) == date(2024, 1, 10)

    def test_clamps_to_short_start_month(self) -> None:
        assert first_due_date(date(2024, 2, 10), 31) == date(2024, 2, 29)

    @pytest.mark.parametrize("day", [1, 14, 28])
    def test_never_precedes_start(self, day: int) -> None:
        start = date(2024, 2, 14)
        assert first_due_date(start, day) >= start


class TestNthDueDate:
    """Test replaying periods from the first due date."""

    def test_zero_periods_is_first_due(self) -> None:
        assert nth_due_date(date(2024, 1, 10), 25, 0) == date(2024, 1, 25)

    def test_replays_periods(self) -> None:
        assert nth_due_date(date(2024, 1, 10), 25, 3) == date(2024, 4, 25)
        assert nth_due_date(date(2024, 1, 10), 25, 12) == date(2025, 1, 25)


class TestParseDate:
    """Test date parsing and formatting helpers."""

    def test_parse_iso_string(self) -> None:
        assert parse_date("2024-03-20") == date(2024, 3, 20)

    def test_parse_timestamp_string(self) -> None:
        assert parse_date("2024-03-20T10:30:00") == date(2024, 3, 20)

    def test_parse_datetime(self) -> None:
        assert parse_date(datetime(2024, 3, 20, 10, 30)) == date(2024, 3, 20)

    def test_parse_date_passthrough(self) -> None:
        assert parse_date(date(2024, 3, 20)) == date(2024, 3, 20)

    @pytest.mark.parametrize("value", [None, ""])
    def test_parse_empty(self, value: str | None) -> None:
        assert parse_date(value) is None

    def test_parse_invalid(self) -> None:
        with pytest.raises(ValueError):
            parse_date("20-03-2024")

    def test_format_date(self) -> None:
        assert format_date(date(2024, 3, 5)) == "2024-03-05"
        assert format_date(None) is None

    @pytest.mark.parametrize("value", ["2024-03-20garbage", "2024-03-20x"])
    def test_parse_rejects_trailing_text(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_date(value)

    def test_parse_space_separated_timestamp(self) -> None:
        assert parse_date("2024-03-20 10:30:00") == date(2024, 3, 20)
