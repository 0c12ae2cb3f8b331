from datetime import datetime, timedelta, timezone

from redeemable.services.expiration import compute_expiration, is_expired, to_utc_naive, utcnow


T = datetime(2024, 3, 1, 12, 0, 0)


def test_valid_for_is_added_to_created_at():
    expires_on = compute_expiration(T, timedelta(days=30))

    assert expires_on == T + timedelta(days=30)
    assert is_expired(expires_on, T + timedelta(days=29)) is False
    assert is_expired(expires_on, T + timedelta(days=31)) is True


def test_explicit_expiration_is_kept():
    explicit = T + timedelta(days=2)

    assert compute_expiration(T, timedelta(days=30), explicit) == explicit


def test_no_valid_for_never_expires():
    assert compute_expiration(T, None) is None
    assert is_expired(None, T) is False
    assert is_expired(None, T + timedelta(days=365 * 100)) is False


def test_expiration_instant_itself_is_not_expired():
    assert is_expired(T, T) is False
    assert is_expired(T, T + timedelta(microseconds=1)) is True


def test_aware_timestamps_are_compared_in_utc():
    aware = datetime(2024, 3, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))

    assert to_utc_naive(aware) == T
    assert is_expired(T, aware + timedelta(seconds=1)) is True
    assert is_expired(aware, T - timedelta(seconds=1)) is False


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None
