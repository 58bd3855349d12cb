from datetime import datetime, timedelta, timezone

from orgauthz.utils.time_utils import to_naive_utc, utcnow


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None


def test_to_naive_utc_converts_aware_values():
    aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

    assert to_naive_utc(aware) == datetime(2024, 1, 1, 10, 0)


def test_to_naive_utc_passes_naive_and_none_through():
    naive = datetime(2024, 1, 1, 12, 0)

    assert to_naive_utc(naive) is naive
    assert to_naive_utc(None) is None
