import random
from datetime import UTC, date, datetime

from finflow.db.models import Transaction, TransactionKind
from finflow.services.analytics_service import (
    category_breakdown,
    current_balance,
    get_analytics,
    monthly_series,
    window_months,
)
from finflow.services.transaction_service import append_transaction
from finflow.windows import resolve

NOW = datetime(2025, 3, 20, 12, 0, tzinfo=UTC)


def _tx(amount: float, category: str = "Food", occurred_at: datetime = NOW, owner_id: str = "u1") -> Transaction:
    kind = TransactionKind.INCOME if amount >= 0 else TransactionKind.EXPENSE
    return Transaction(
        id=None,
        owner_id=owner_id,
        kind=kind,
        amount=amount,
        category=category,
        description="",
        occurred_at=occurred_at,
        created_at=occurred_at,
        updated_at=occurred_at,
    )


def test_empty_series_is_zero_filled():
    series = monthly_series([], resolve("3months", NOW))
    assert len(series) == 3
    assert [p.label for p in series] == ["Jan 25", "Feb 25", "Mar 25"]
    for p in series:
        assert (p.income, p.expenses, p.savings, p.savings_rate) == (0, 0, 0, 0)


def test_window_months_counts():
    for name, count in (("1month", 1), ("3months", 3), ("6months", 6), ("12months", 12)):
        assert len(window_months(resolve(name, NOW))) == count
    months = window_months(resolve("12months", NOW))
    assert months[0] == date(2024, 4, 1)
    assert months[-1] == date(2025, 3, 1)


def test_monthly_series_sums():
    txs = [
        _tx(1000, "Salary", datetime(2025, 2, 1, tzinfo=UTC)),
        _tx(-200, "Rent", datetime(2025, 2, 3, tzinfo=UTC)),
        _tx(-50, "Food", datetime(2025, 2, 10, tzinfo=UTC)),
        _tx(-30, "Food", datetime(2025, 3, 5, tzinfo=UTC)),
    ]
    series = monthly_series(txs, resolve("3months", NOW))
    jan, feb, mar = series
    assert jan.income == 0 and jan.expenses == 0
    assert feb.income == 1000
    assert feb.expenses == 250
    assert feb.savings == 750
    assert feb.savings_rate == 75.0
    assert mar.income == 0
    assert mar.expenses == 30
    assert mar.savings == -30
    assert mar.savings_rate == 0


def test_monthly_series_ignores_outside_window():
    txs = [
        _tx(-999, occurred_at=datetime(2024, 1, 1, tzinfo=UTC)),
        _tx(-999, occurred_at=datetime(2025, 4, 1, tzinfo=UTC)),
    ]
    series = monthly_series(txs, resolve("3months", NOW))
    assert sum(p.expenses for p in series) == 0


def test_category_breakdown_expenses_only():
    txs = [
        _tx(-20, "Food"),
        _tx(-30, "Food"),
        _tx(-100, "Rent"),
        _tx(500, "Salary"),
        _tx(-5, "food"),
        _tx(-70, "Travel", datetime(2024, 1, 1, tzinfo=UTC)),
    ]
    breakdown = category_breakdown(txs, resolve("1month", NOW))
    assert breakdown == {"Rent": 100.0, "Food": 50.0, "food": 5.0}
    assert list(breakdown) == ["Rent", "Food", "food"]


def test_current_balance_all_time():
    txs = [
        _tx(1000, "Salary"),
        _tx(-200, "Rent"),
        _tx(-50, "Food", datetime(2019, 5, 1, tzinfo=UTC)),
    ]
    assert current_balance(txs) == 750.0
    assert current_balance([]) == 0


def test_current_balance_order_independent():
    txs = [_tx(a) for a in (0.1, 0.2, 0.3, -0.6, 1e6, -1e6, 19.99, -4.01)]
    expected = current_balance(txs)
    rng = random.Random(7)
    for _ in range(20):
        shuffled = txs[:]
        rng.shuffle(shuffled)
        assert current_balance(shuffled) == expected


async def test_get_analytics_reads_store():
    await append_transaction(_tx(1000, "Salary", datetime(2025, 3, 1, tzinfo=UTC)))
    await append_transaction(_tx(-400, "Rent", datetime(2025, 3, 2, tzinfo=UTC)))
    await append_transaction(_tx(-100, "Food", datetime(2023, 3, 2, tzinfo=UTC)))
    await append_transaction(_tx(5000, "Salary", occurred_at=NOW, owner_id="u2"))

    analytics = await get_analytics("u1", "1month", now=NOW)
    assert analytics.window.name == "1month"
    assert analytics.balance == 500.0
    assert analytics.total_income == 1000.0
    assert analytics.total_expenses == 400.0
    assert analytics.savings_rate == 60.0
    assert analytics.categories == {"Rent": 400.0}
    assert len(analytics.monthly) == 1


async def test_get_analytics_unknown_window_uses_default():
    analytics = await get_analytics("u1", "someday", now=NOW)
    assert analytics.window.name == "6months"
    assert len(analytics.monthly) == 6
    assert analytics.balance == 0


async def test_get_analytics_totals_include_partial_leading_month():
    await append_transaction(_tx(-100, "Food", datetime(2024, 12, 25, tzinfo=UTC)))
    await append_transaction(_tx(-30, "Transport", datetime(2025, 2, 5, tzinfo=UTC)))

    analytics = await get_analytics("u1", "3months", now=NOW)
    assert [p.label for p in analytics.monthly] == ["Jan 25", "Feb 25", "Mar 25"]
    assert analytics.categories == {"Food": 100.0, "Transport": 30.0}
    assert analytics.total_expenses == 130.0
    assert analytics.total_expenses == sum(analytics.categories.values())
    assert analytics.total_income == 0.0
