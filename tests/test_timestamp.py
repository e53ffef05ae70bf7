"""
Unit tests for the compact timestamp normalizer.

Europe/Amsterdam runs at UTC+1 in winter and UTC+2 in summer. In 2023 the
clocks moved forward on 26 March (02:00 -> 03:00) and back on 29 October
(03:00 -> 02:00).
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from p1telegram.errors import InvalidTimestamp
from p1telegram.timestamp import normalize_timestamp

AMSTERDAM = "Europe/Amsterdam"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestRegularDays:
    def test_summer_time(self) -> None:
        assert normalize_timestamp("230615120000S", AMSTERDAM) == utc(2023, 6, 15, 10, 0, 0)

    def test_winter_time(self) -> None:
        assert normalize_timestamp("231215120000W", AMSTERDAM) == utc(2023, 12, 15, 11, 0, 0)

    def test_result_is_utc_aware(self) -> None:
        result = normalize_timestamp("230615120000S", AMSTERDAM)
        assert result.tzinfo is timezone.utc
        assert result.utcoffset() == timedelta(0)

    def test_two_digit_year_is_in_this_century(self) -> None:
        assert normalize_timestamp("000101000000W", AMSTERDAM) == utc(1999, 12, 31, 23, 0, 0)

    def test_seconds_are_kept(self) -> None:
        assert normalize_timestamp("230615120059S", AMSTERDAM) == utc(2023, 6, 15, 10, 0, 59)

    def test_zone_object_is_accepted(self) -> None:
        zone = ZoneInfo("Europe/Brussels")
        assert normalize_timestamp("230615120000S", zone) == utc(2023, 6, 15, 10, 0, 0)


class TestDaylightSavingIndicator:
    def test_spring_forward_hour(self) -> None:
        """02:30 does not exist on the clock; the indicator still decides."""
        summer = normalize_timestamp("230326023000S", AMSTERDAM)
        winter = normalize_timestamp("230326023000W", AMSTERDAM)

        assert summer == utc(2023, 3, 26, 0, 30, 0)
        assert winter == utc(2023, 3, 26, 1, 30, 0)
        assert winter - summer == timedelta(hours=1)

    def test_fall_back_hour(self) -> None:
        """02:30 occurs twice; S is the first pass, W the second."""
        summer = normalize_timestamp("231029023000S", AMSTERDAM)
        winter = normalize_timestamp("231029023000W", AMSTERDAM)

        assert summer == utc(2023, 10, 29, 0, 30, 0)
        assert winter == utc(2023, 10, 29, 1, 30, 0)

    def test_indicator_overrides_calendar(self) -> None:
        """A W timestamp in June is read as UTC+1, not recomputed to summer time."""
        assert normalize_timestamp("230615120000W", AMSTERDAM) == utc(2023, 6, 15, 11, 0, 0)
        assert normalize_timestamp("231215120000S", AMSTERDAM) == utc(2023, 12, 15, 10, 0, 0)

    def test_zone_without_dst(self) -> None:
        assert normalize_timestamp("230615120000W", timezone.utc) == utc(2023, 6, 15, 12, 0, 0)
        assert normalize_timestamp("230615120000S", timezone.utc) == utc(2023, 6, 15, 11, 0, 0)


class TestInvalidTimestamps:
    @pytest.mark.parametrize(
        "compact",
        [
            "231315120000W",  # month 13
            "230230120000W",  # 30 February
            "230615240000S",  # hour 24
            "230615126000S",  # minute 60
            "230615120060S",  # second 60
            "230015120000S",  # month 0
        ],
    )
    def test_calendar_invalid(self, compact: str) -> None:
        with pytest.raises(InvalidTimestamp) as excinfo:
            normalize_timestamp(compact, AMSTERDAM)
        assert excinfo.value.value == compact

    @pytest.mark.parametrize("indicator", ["X", "s", "w", " ", "0"])
    def test_unknown_indicator(self, indicator: str) -> None:
        with pytest.raises(InvalidTimestamp) as excinfo:
            normalize_timestamp("230615120000" + indicator, AMSTERDAM)
        assert "indicator" in excinfo.value.reason

    @pytest.mark.parametrize(
        "compact", ["", "2306151200S", "230615120000", "230615120000SS", "23061512000AS"]
    )
    def test_wrong_shape(self, compact: str) -> None:
        with pytest.raises(InvalidTimestamp):
            normalize_timestamp(compact, AMSTERDAM)
