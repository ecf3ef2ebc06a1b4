"""
Analysis window utilities.

All windows are inclusive ranges of local calendar dates (YYYY-MM-DD).
Today is never part of a window: its spend and lead data is still coming in,
so the latest analyzable day is always the client's yesterday.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

# Window lengths (in days)
TRAILING_WINDOW_DAYS = 7
BEFORE_WINDOW_DAYS = 7
AFTER_WINDOW_DAYS = 7

ANALYSIS_PERIODS = {
    "yesterday": ("Yesterday", 1),
    "trailing7": ("Trailing 7 days (excluding today)", TRAILING_WINDOW_DAYS),
}
DEFAULT_PERIOD = "trailing7"


@dataclass(frozen=True)
class DateWindow:
    """Inclusive range of calendar days."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return max((self.end - self.start).days + 1, 0)

    @property
    def start_str(self) -> str:
        return self.start.isoformat()

    @property
    def end_str(self) -> str:
        return self.end.isoformat()

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class AnalysisWindow(DateWindow):
    """The reporting window for one request, derived from the client's today."""

    today: Optional[date] = None
    period: str = DEFAULT_PERIOD
    description: str = ""

    @property
    def yesterday(self) -> date:
        return self.today - timedelta(days=1)

    def to_dict(self) -> dict:
        return {
            "startDate": self.start_str,
            "endDate": self.end_str,
            "description": self.description,
        }


def to_day(value: Union[str, date, datetime]) -> date:
    """
    Truncate a date-like value to its UTC calendar day.

    Accepts `date`, `datetime` and ISO strings ("2024-03-10",
    "2024-03-10T15:30:00Z", "2024-03-05T23:15:00-05:00"). Timestamps with
    an offset are converted to UTC first; naive ones are taken as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) < 10:
        raise ValueError(f"Invalid date: {value!r}")
    if len(value) == 10:
        return datetime.strptime(value, "%Y-%m-%d").date()
    # fromisoformat only takes "Z" from Python 3.11
    return to_day(datetime.fromisoformat(value.replace("Z", "+00:00")))


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def analysis_window(
    client_date: Optional[Union[str, date]] = None,
    period: str = DEFAULT_PERIOD,
) -> AnalysisWindow:
    """
    Compute the analysis window for a request.

    `client_date` is the user's local today. The window always ends on the
    day before it; "trailing7" covers the 7 days up to and including that
    day, "yesterday" covers just that day.
    """
    if period not in ANALYSIS_PERIODS:
        raise ValueError(f"Unknown analysis period: {period!r}")

    today = to_day(client_date) if client_date else utc_today()
    description, length = ANALYSIS_PERIODS[period]

    end = today - timedelta(days=1)
    start = end - timedelta(days=length - 1)

    return AnalysisWindow(
        start=start,
        end=end,
        today=today,
        period=period,
        description=description,
    )
