"""
Tests unitarios para datetime_utils.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.shared.utils.datetime_utils import DateTimeUtils, ensure_utc, utc_now


class TestEnsureUtc:
    def test_naive_is_assumed_utc(self) -> None:
        assert ensure_utc(datetime(2025, 1, 1, 8, 0)) == datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_aware_is_converted(self) -> None:
        kst = timezone(timedelta(hours=9))
        result = ensure_utc(datetime(2025, 1, 1, 9, 0, tzinfo=kst))

        assert result == datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)
        assert result.utcoffset() == timedelta(0)

    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo is not None


class TestFromIsoString:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2025-01-02T03:04:05Z", datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
            ("2025-01-02T12:04:05+09:00", datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)),
            ("2025-01-02", datetime(2025, 1, 2, tzinfo=timezone.utc)),
        ],
    )
    def test_valid(self, value: str, expected: datetime) -> None:
        assert DateTimeUtils.from_iso_string(value) == expected

    @pytest.mark.parametrize("value", [None, "", "ayer", "2025-13-01"])
    def test_invalid_returns_none(self, value) -> None:
        assert DateTimeUtils.from_iso_string(value) is None

    def test_to_iso_string(self) -> None:
        assert DateTimeUtils.to_iso_string(datetime(2025, 1, 1)) == "2025-01-01T00:00:00+00:00"
