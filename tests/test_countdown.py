from datetime import datetime, timezone

import pytest

from proctored_cbt.services.countdown import format_remaining, remaining_seconds, to_timestamp

START = 1_700_000_000.0


def test_remaining_is_monotonic_and_stops_at_zero():
    previous = None
    for elapsed in range(0, 3700, 7):
        value = remaining_seconds(START, 60, START + elapsed)
        assert value >= 0
        if previous is not None:
            assert value <= previous
        previous = value
    assert remaining_seconds(START, 60, START + 3600) == 0
    assert remaining_seconds(START, 60, START + 99999) == 0


def test_remaining_floors_fractional_seconds():
    assert remaining_seconds(START, 1, START + 0.5) == 59
    assert remaining_seconds(START, 1, START + 59.9) == 0


def test_clock_before_start_returns_full_duration():
    assert remaining_seconds(START, 10, START - 30) == 600


def test_accepts_datetime_start():
    start = datetime.fromtimestamp(START, tz=timezone.utc)
    assert remaining_seconds(start, 60, START + 60) == 3540
    assert to_timestamp(start) == START
    assert to_timestamp(None) is None


@pytest.mark.parametrize("seconds, expected", [(0, "0:00"), (61, "1:01"), (3600, "60:00"), (-5, "0:00")])
def test_format_remaining(seconds, expected):
    assert format_remaining(seconds) == expected
