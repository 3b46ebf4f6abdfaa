from datetime import datetime, timedelta, timezone

DEFAULT_TTL = timedelta(days=30)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def expiry_cutoff(now: datetime, ttl: timedelta = DEFAULT_TTL) -> datetime:
    """Messages created before this instant are past their TTL."""
    return now - ttl
