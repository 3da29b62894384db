import logging
from calendar import monthrange
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime

from finflow.config import WINDOW_MONTHS, settings
from finflow.db.models import Transaction
from finflow.errors import UnknownWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TimeWindow:
    name: str
    start: datetime
    end: datetime
    months: int | None = None

    def contains(self, moment: datetime) -> bool:
        return self.start <= as_utc(moment) <= self.end


def as_utc(moment: datetime | date) -> datetime:
    if not isinstance(moment, datetime):
        return datetime(moment.year, moment.month, moment.day, tzinfo=UTC)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def subtract_months(moment: datetime, months: int) -> datetime:
    """Calendar-month subtraction: Mar 31 minus 1 month is Feb 28 (or 29)."""
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def resolve(window_name: str, now: datetime | None = None) -> TimeWindow:
    name = window_name.strip().lower() if window_name else ""
    if name not in WINDOW_MONTHS:
        raise UnknownWindow(window_name)
    end = as_utc(now) if now else datetime.now(UTC)
    months = WINDOW_MONTHS[name]
    return TimeWindow(name=name, start=subtract_months(end, months), end=end, months=months)


def resolve_or_default(window_name: str | None, now: datetime | None = None) -> TimeWindow:
    """Resolve a window name, falling back to ``settings.default_window``.

    The fallback is logged so an unexpected name never silently changes the
    range being displayed.
    """
    if window_name is None:
        return resolve(settings.default_window, now)
    try:
        return resolve(window_name, now)
    except UnknownWindow:
        logger.warning("Unknown window %r, using default %s", window_name, settings.default_window)
        return resolve(settings.default_window, now)


def filter_window(transactions: Iterable[Transaction], window: TimeWindow) -> list[Transaction]:
    return [t for t in transactions if window.contains(t.occurred_at)]
