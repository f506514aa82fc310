from datetime import date, datetime, timedelta, timezone

import pytest

from sealdb.core.dates import canonical_date, now_utc


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-01-01T12:00:00Z", "2024-01-01T12:00:00+00:00"),
        ("2024-01-01T10:00:00+05:00", "2024-01-01T05:00:00+00:00"),
        ("2024-01-01T23:30:00-01:00", "2024-01-02T00:30:00+00:00"),
        ("2024-01-01T12:00:00.250Z", "2024-01-01T12:00:00.250000+00:00"),
        ("2024-01-01T12:00:00", "2024-01-01T12:00:00"),
        ("2024-01-01", "2024-01-01"),
        (" 2024-01-01 ", "2024-01-01"),
        (date(2024, 1, 1), "2024-01-01"),
        (datetime(2024, 1, 1, 12), "2024-01-01T12:00:00"),
        (datetime(2024, 1, 1, 8, tzinfo=timezone(timedelta(hours=-4))), "2024-01-01T12:00:00+00:00"),
    ],
)
def test_canonical_date(value, expected):
    assert canonical_date(value) == expected


@pytest.mark.parametrize("value", ["yesterday", "2024-13-01", "2024-01-01T25:00:00Z", ""])
def test_invalid_strings_raise_value_error(value):
    with pytest.raises(ValueError):
        canonical_date(value)


@pytest.mark.parametrize("value", [None, 20240101, True, ["2024-01-01"]])
def test_non_date_values_raise_type_error(value):
    with pytest.raises(TypeError):
        canonical_date(value)


def test_canonical_utc_strings_order_chronologically():
    values = ["2024-01-01T10:00:00+05:00", "2024-01-01T06:00:00Z", "2024-01-01T04:00:00-03:00"]
    assert sorted(canonical_date(v) for v in values) == [
        "2024-01-01T05:00:00+00:00",
        "2024-01-01T06:00:00+00:00",
        "2024-01-01T07:00:00+00:00",
    ]


def test_now_utc_is_canonical():
    value = now_utc()
    assert value.endswith("+00:00")
    assert canonical_date(value) == value
