from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from bayline.core.errors import BookingValidationError
from bayline.utils.venue_time import (
    format_minutes,
    from_absolute,
    parse_date_key,
    parse_start_time,
    to_absolute,
    venue_now,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestToAbsolute:
    def test_summer_offset(self):
        assert to_absolute(date(2030, 6, 15), 18 * 60) == utc(2030, 6, 15, 22, 0)

    def test_winter_offset(self):
        assert to_absolute(date(2030, 1, 15), 18 * 60) == utc(2030, 1, 15, 23, 0)

    def test_offset_resolved_per_date_around_spring_forward(self):
        assert to_absolute(date(2024, 3, 9), 12 * 60) == utc(2024, 3, 9, 17, 0)
        assert to_absolute(date(2024, 3, 10), 12 * 60) == utc(2024, 3, 10, 16, 0)

    def test_spring_forward_gap_uses_offset_before_transition(self):
        # 02:00 does not exist on 2024-03-10 in New York
        assert to_absolute(date(2024, 3, 10), 120) == utc(2024, 3, 10, 7, 0)

    def test_fall_back_repeated_hour_resolves_to_first_occurrence(self):
        assert to_absolute(date(2024, 11, 3), 60) == utc(2024, 11, 3, 5, 0)
        assert to_absolute(date(2024, 11, 3), 120) == utc(2024, 11, 3, 7, 0)

    def test_explicit_zone(self):
        assert to_absolute(date(2030, 6, 15), 0, ZoneInfo("UTC")) == utc(2030, 6, 15, 0, 0)

    def test_end_of_day(self):
        assert to_absolute(date(2030, 6, 15), 1440) == to_absolute(date(2030, 6, 16), 0)


class TestFromAbsolute:
    def test_inverse_of_to_absolute(self):
        assert from_absolute(utc(2030, 6, 15, 22, 30)) == (date(2030, 6, 15), 18 * 60 + 30)

    def test_crosses_local_midnight(self):
        assert from_absolute(utc(2030, 6, 16, 2, 0)) == (date(2030, 6, 15), 22 * 60)

    def test_naive_rejected(self):
        with pytest.raises(ValueError):
            from_absolute(datetime(2030, 6, 15, 12, 0))


class TestParsing:
    @pytest.mark.parametrize("value", ["06/15/2030", "2030-6-15", "", "2030-02-30", 20300615])
    def test_bad_date_keys(self, value):
        with pytest.raises(BookingValidationError):
            parse_date_key(value)

    def test_datetime_is_not_a_date_key(self):
        with pytest.raises(BookingValidationError):
            parse_date_key(datetime(2030, 6, 15))

    def test_good_date_key(self):
        assert parse_date_key("2030-06-15") == date(2030, 6, 15)

    @pytest.mark.parametrize(
        "text,minutes",
        [
            ("6:00 PM", 1080),
            ("6 pm", 1080),
            ("12:00 AM", 0),
            ("12:30 PM", 750),
            ("18:30", 1110),
            ("0:00", 0),
        ],
    )
    def test_start_times(self, text, minutes):
        assert parse_start_time(text) == minutes

    @pytest.mark.parametrize("text", ["13:00 PM", "25:00", "noon", "", "6:75 PM"])
    def test_bad_start_times(self, text):
        assert parse_start_time(text) is None

    def test_format_minutes(self):
        assert format_minutes(1110) == "18:30"
        assert format_minutes(0) == "00:00"


def test_venue_now_uses_injected_clock():
    local = venue_now(utc(2030, 6, 15, 3, 0))
    assert local.date() == date(2030, 6, 14)
    assert local.hour == 23
