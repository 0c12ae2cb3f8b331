from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    # Keep naive UTC timestamps to match the TIMESTAMP columns.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(dt: datetime | None) -> datetime | None:
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def compute_expiration(
    created_at: datetime,
    valid_for: timedelta | None,
    existing_expires_on: datetime | None = None,
) -> datetime | None:
    """Expiration timestamp for a new redeemable.

    An explicitly supplied ``existing_expires_on`` always wins. Without one,
    the redeemable expires ``valid_for`` after ``created_at``, or never when
    no duration is configured.
    """
    if existing_expires_on is not None:
        return existing_expires_on
    if valid_for is None:
        return None
    return to_utc_naive(created_at) + valid_for


def is_expired(expires_on: datetime | None, now: datetime | None = None) -> bool:
    if expires_on is None:
        return False
    if now is None:
        now = utcnow()
    return to_utc_naive(expires_on) < to_utc_naive(now)
