# window.py
from datetime import date, datetime, timezone


def analysis_date_utc(now: datetime | None = None) -> date:
    """
    Calendar date (UTC) whose Due Date logs are analyzed.

    Naive datetimes are treated as UTC; aware ones are converted first.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)
    return now.date()
