"""Unit tests for datetime utilities."""

from datetime import datetime, timedelta, timezone

import pytest

from assessment_engine.utils.datetime_utils import (
    duration_ms,
    ensure_utc,
    format_duration_ms,
    format_time_remaining,
    parse_datetime,
    split_days_hours,
    utc_now,
)


class TestParsing:
    """Test datetime parsing and normalization."""

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo == timezone.utc

    def test_ensure_utc(self):
        assert ensure_utc(datetime(2024, 1, 1)).tzinfo == timezone.utc
        assert ensure_utc(datetime(2024, 1, 1, 5, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))) == datetime(
            2024, 1, 1, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-01-01T00:00:00Z", datetime(2024, 1, 1, tzinfo=timezone.utc)),
            ("2024-01-01T00:00:00+00:00", datetime(2024, 1, 1, tzinfo=timezone.utc)),
            ("2024-01-01T02:00:00+02:00", datetime(2024, 1, 1, tzinfo=timezone.utc)),
            ("2024-01-01", datetime(2024, 1, 1, tzinfo=timezone.utc)),
            (datetime(2024, 1, 1), datetime(2024, 1, 1, tzinfo=timezone.utc)),
            (None, None),
            ("", None),
        ],
    )
    def test_parse_datetime(self, value, expected):
        assert parse_datetime(value) == expected

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_datetime("next tuesday")


class TestDurations:
    """Test duration arithmetic and formatting."""

    def test_duration_ms(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert duration_ms(start, start + timedelta(seconds=1, microseconds=500000)) == 1500
        assert duration_ms(start + timedelta(seconds=2), start) == -2000

    def test_split_days_hours(self):
        assert split_days_hours(((2 * 24) + 5) * 3600 * 1000 + 59 * 60 * 1000) == (2, 5)

    @pytest.mark.parametrize("ms, expected", [(0, "0s"), (45000, "45s"), (125000, "2m 5s"), (60000, "1m 0s")])
    def test_format_duration_ms(self, ms, expected):
        assert format_duration_ms(ms) == expected

    @pytest.mark.parametrize(
        "ms, expected",
        [
            (-1, "Expired"),
            (0, "0 hours remaining"),
            (5 * 3600 * 1000, "5 hours remaining"),
            ((24 + 3) * 3600 * 1000, "1 day 3 hours remaining"),
            ((72 + 1) * 3600 * 1000, "3 days 1 hours remaining"),
        ],
    )
    def test_format_time_remaining(self, ms, expected):
        assert format_time_remaining(ms) == expected
