"""Due-date cursor arithmetic.

Loans are paid on a fixed day of the month. The due day is clamped to
``[1, 28]`` when a loan is created or edited so that every calendar month
contains it and the schedule never drifts; ``relativedelta`` still clamps
to the days actually available in the target month so the helpers stay
correct for any input.
"""

from datetime import date, datetime

from dateutil.relativedelta import relativedelta

MIN_DUE_DAY = 1
MAX_DUE_DAY = 28


def clamp_due_day(day: int | None) -> int:
    """Clamp a due day to ``[1, 28]``; missing or zero values become 1."""
    return min(MAX_DUE_DAY, max(MIN_DUE_DAY, int(day or MIN_DUE_DAY)))


def advance_one_month(current: date, due_day: int) -> date:
    """Move to the following calendar month, keeping the target day.

    Parameters
    ----------
    current : date
        Current due date (only its year and month are used).
    due_day : int
        Target day of month.

    Returns
    -------
    date
        Date in the next calendar month with
        ``day = min(due_day, days_in_that_month)``.
    """
    return current + relativedelta(months=1, day=due_day)


def first_due_date(start: date, due_day: int) -> date:
    """Return the first due date on or after ``start``.

    The candidate is the due day within the start month; if it precedes
    the start date the schedule begins in the following month.

    Examples
    --------
    >>> first_due_date(date(2024, 3, 20), 5)
    datetime.date(2024, 4, 5)
    >>> first_due_date(date(2024, 3, 1), 5)
    datetime.date(2024, 3, 5)
    """
    candidate = start + relativedelta(day=due_day)
    if candidate < start:
        return advance_one_month(start, due_day)
    return candidate


def nth_due_date(start: date, due_day: int, periods: int) -> date:
    """Return the first due date advanced ``periods`` times."""
    due = first_due_date(start, due_day)
    for _ in range(periods):
        due = advance_one_month(due, due_day)
    return due


def parse_date(value: str | date | datetime | None) -> date | None:
    """Parse a ``YYYY-MM-DD`` string (or date/datetime) into a date.

    Raises
    ------
    ValueError
        If the string is not an ISO calendar date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    # Timestamps such as "2024-03-20T00:00:00" keep only the calendar part
    if text[10:11] in ("T", " "):
        text = text[:10]
    return date.fromisoformat(text)


def format_date(value: date | None) -> str | None:
    """Format a date as ``YYYY-MM-DD``."""
    return value.isoformat() if value is not None else None
