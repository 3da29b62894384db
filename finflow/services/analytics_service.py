"""Derived figures over an owner's transactions.

Everything except ``get_analytics`` is pure and works on an already fetched
list. Sums go through ``math.fsum`` so results do not depend on input order.
"""

import math
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime

from finflow.db.models import Transaction, TransactionKind
from finflow.services.transaction_service import list_by_owner
from finflow.windows import TimeWindow, as_utc, filter_window, resolve_or_default


@dataclass(slots=True)
class AggregatedPeriod:
    month: date
    label: str
    income: float = 0.0
    expenses: float = 0.0
    savings: float = 0.0
    savings_rate: float = 0.0


@dataclass(slots=True)
class Analytics:
    window: TimeWindow
    balance: float
    total_income: float
    total_expenses: float
    savings_rate: float
    monthly: list[AggregatedPeriod] = field(default_factory=list)
    categories: dict[str, float] = field(default_factory=dict)


def savings_rate(income: float, savings: float) -> float:
    return savings * 100 / income if income > 0 else 0.0


def _month_key(moment: datetime) -> date:
    moment = as_utc(moment)
    return date(moment.year, moment.month, 1)


def _next_month(month: date) -> date:
    if month.month == 12:
        return date(month.year + 1, 1, 1)
    return date(month.year, month.month + 1, 1)


def window_months(window: TimeWindow) -> list[date]:
    """Calendar months covered by the window, oldest first.

    A window resolved from an N-month name yields exactly N months, ending
    with the month of ``window.end``.
    """
    months = []
    month, last = _month_key(window.start), _month_key(window.end)
    while month <= last:
        months.append(month)
        month = _next_month(month)
    if window.months is not None:
        months = months[-window.months :]
    return months


def monthly_series(transactions: Iterable[Transaction], window: TimeWindow) -> list[AggregatedPeriod]:
    months = window_months(window)
    income: dict[date, list[float]] = defaultdict(list)
    expenses: dict[date, list[float]] = defaultdict(list)
    for t in filter_window(transactions, window):
        key = _month_key(t.occurred_at)
        if t.kind == TransactionKind.INCOME:
            income[key].append(t.amount)
        else:
            expenses[key].append(abs(t.amount))

    series = []
    for month in months:
        period = AggregatedPeriod(month=month, label=month.strftime("%b %y"))
        period.income = math.fsum(income[month])
        period.expenses = math.fsum(expenses[month])
        period.savings = period.income - period.expenses
        period.savings_rate = savings_rate(period.income, period.savings)
        series.append(period)
    return series


def category_breakdown(transactions: Iterable[Transaction], window: TimeWindow) -> dict[str, float]:
    by_category: dict[str, list[float]] = defaultdict(list)
    for t in filter_window(transactions, window):
        if t.kind == TransactionKind.EXPENSE:
            by_category[t.category].append(abs(t.amount))
    totals = {category: math.fsum(values) for category, values in by_category.items()}
    return dict(sorted(totals.items(), key=lambda item: (-item[1], item[0])))


def current_balance(transactions: Iterable[Transaction]) -> float:
    return math.fsum(t.amount for t in transactions)


async def get_analytics(owner_id: str, window_name: str | None, now: datetime | None = None) -> Analytics:
    """Balance, totals, monthly series and category breakdown for one window.

    Totals cover every transaction inside the window, including those in a
    partial leading month that the N-period series leaves out, so they always
    agree with ``categories``.
    """
    transactions = await list_by_owner(owner_id)
    window = resolve_or_default(window_name, now)
    in_window = filter_window(transactions, window)
    total_income = math.fsum(t.amount for t in in_window if t.kind == TransactionKind.INCOME)
    total_expenses = math.fsum(abs(t.amount) for t in in_window if t.kind == TransactionKind.EXPENSE)
    return Analytics(
        window=window,
        balance=current_balance(transactions),
        total_income=total_income,
        total_expenses=total_expenses,
        savings_rate=savings_rate(total_income, total_income - total_expenses),
        monthly=monthly_series(in_window, window),
        categories=category_breakdown(in_window, window),
    )
