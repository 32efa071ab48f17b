"""
Daily Aggregation Tests
=======================
Cross-order aggregation of release records, windowed subtotals and
page clamping.
Run with: python3 -m pytest tests/test_daily.py -v
"""

import math
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from afx_app.errors import InvalidArgument
from afx_app.schemas import OrderDailyDetail, StakingOrder
from afx_app.services.daily import (
    FLOW_FIELDS,
    PAGE_SIZE,
    STOCK_FIELDS,
    aggregate_all_orders,
    collect_order_details,
    compute_summary,
    page_count,
    paginate,
)


# ── Helpers ──────────────────────────────────────────────────────────────────

def detail(day, order_id="o1", scale=1.0, price=0.1):
    """A record whose fields are simple multiples of the day, for easy sums."""
    return OrderDailyDetail(
        day=day,
        order_id=order_id,
        principal_release=10.0 * scale,
        interest_release=2.0 * scale,
        daily_af_release=100.0 * scale,
        af_price=price,
        cum_af_released=100.0 * scale * day,
        af_in_system=40.0 * scale * day,
        trading_capital=5.0 * scale,
        forex_income=0.5 * scale,
        withdrawn_af=60.0 * scale,
        withdraw_fee=1.0 * scale,
    )


def series(days, order_id="o1", scale=1.0, start=1):
    return [detail(d, order_id, scale) for d in range(start, start + days)]


# ── aggregate_all_orders ─────────────────────────────────────────────────────

def test_zero_orders_yield_zeroed_days():
    rows = aggregate_all_orders({}, 30)

    assert [r.day for r in rows] == list(range(1, 31))
    for r in rows:
        assert r.order_id == "all"
        for f in FLOW_FIELDS + STOCK_FIELDS:
            assert getattr(r, f) == 0, f"day {r.day} field {f} should be zero"
        assert r.af_price == 0


def test_zero_horizon_is_empty():
    assert aggregate_all_orders({"o1": series(5)}, 0) == []


def test_negative_horizon_rejected():
    with pytest.raises(InvalidArgument):
        aggregate_all_orders({}, -1)


def test_flows_and_stocks_summed_across_orders():
    rows = aggregate_all_orders({"o1": series(10), "o2": series(10, "o2", scale=2.0)}, 10)

    day3 = rows[2]
    assert day3.day == 3
    assert math.isclose(day3.principal_release, 30.0)
    assert math.isclose(day3.interest_release, 6.0)
    assert math.isclose(day3.daily_af_release, 300.0)
    assert math.isclose(day3.withdraw_fee, 3.0)
    assert math.isclose(day3.cum_af_released, 100 * 3 + 200 * 3), "stocks are summed across orders"
    assert math.isclose(day3.af_in_system, 40 * 3 + 80 * 3)


def test_orders_starting_later_only_fill_their_days():
    rows = aggregate_all_orders({"early": series(5), "late": series(3, "late", start=4)}, 8)

    assert [r.principal_release for r in rows] == [10, 10, 10, 20, 20, 10, 0, 0]


def test_records_outside_horizon_are_skipped():
    rows = aggregate_all_orders({"o1": series(12)}, 10)

    assert len(rows) == 10
    assert math.isclose(sum(r.principal_release for r in rows), 100.0)


def test_price_is_last_write_wins():
    """The day's price is the last order's record in iteration order, not an average."""
    details = {
        "first": [detail(1, "first", price=0.10)],
        "second": [detail(1, "second", price=0.30)],
        "third": [detail(1, "third", price=0.20)],
    }
    assert aggregate_all_orders(details, 1)[0].af_price == 0.20

    reordered = {k: details[k] for k in ("third", "first", "second")}
    assert aggregate_all_orders(reordered, 1)[0].af_price == 0.30


def test_unsorted_input_yields_sorted_output():
    rows = aggregate_all_orders({"o1": list(reversed(series(6)))}, 6)
    assert [r.day for r in rows] == [1, 2, 3, 4, 5, 6]


# ── compute_summary ──────────────────────────────────────────────────────────

def test_summary_sums_flows_and_reads_last_stock():
    rows = series(5)
    summary = compute_summary(rows)

    assert math.isclose(summary.principal_release, 50.0)
    assert math.isclose(summary.daily_af_release, 500.0)
    assert math.isclose(summary.forex_income, 2.5)
    assert summary.cum_af_released == rows[-1].cum_af_released == 500.0
    assert summary.af_in_system == rows[-1].af_in_system == 200.0


def test_summary_of_no_rows_is_zero():
    summary = compute_summary([])
    assert all(v == 0 for v in summary.model_dump().values())


# ── paginate ─────────────────────────────────────────────────────────────────

def test_page_count():
    assert page_count(0) == 1
    assert page_count(20) == 1
    assert page_count(21) == 2
    assert page_count(45, PAGE_SIZE) == 3


def test_out_of_range_page_clamps_to_last():
    rows = series(45)

    last = paginate(rows, 2)
    clamped = paginate(rows, 1000)

    assert clamped.page == 2
    assert [r.day for r in clamped.rows] == list(range(41, 46))
    assert clamped.rows == last.rows
    assert clamped.summary == last.summary
    assert clamped.total_pages == 3
    assert clamped.total_rows == 45


def test_negative_page_clamps_to_first():
    page = paginate(series(45), -4)
    assert page.page == 0
    assert [r.day for r in page.rows] == list(range(1, 21))


def test_page_summary_covers_only_its_rows():
    page = paginate(series(45), 1)

    assert math.isclose(page.summary.principal_release, 200.0)
    assert page.summary.cum_af_released == 4000.0, "stock comes from day 40, the page's last row"


def test_empty_series_has_one_empty_page():
    page = paginate([], 3)
    assert page.page == 0
    assert page.total_pages == 1
    assert page.rows == []


def test_custom_page_size_and_invalid_size():
    page = paginate(series(10), 1, page_size=4)
    assert [r.day for r in page.rows] == [5, 6, 7, 8]

    with pytest.raises(InvalidArgument):
        paginate(series(10), 0, page_size=0)


# ── collect_order_details ────────────────────────────────────────────────────

def test_collect_order_details_calls_schedule_per_order():
    orders = [
        StakingOrder(id="a", amount=100, mode="days", duration_days=30),
        StakingOrder(id="b", amount=300, mode="days", duration_days=30, start_day=2),
    ]
    calls = []

    def schedule(order, horizon):
        calls.append((order.id, horizon))
        return series(horizon - order.start_day, order.id, scale=order.amount / 100, start=order.start_day + 1)

    details = collect_order_details(orders, schedule, 5)

    assert calls == [("a", 5), ("b", 5)]
    assert list(details) == ["a", "b"]
    rows = aggregate_all_orders(details, 5)
    assert [r.principal_release for r in rows] == [10, 10, 40, 40, 40]
