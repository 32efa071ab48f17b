import math
from typing import Callable, Dict, List, Mapping, Sequence

import numpy as np

from afx_app.errors import InvalidArgument
from afx_app.schemas import DailyPage, DailySummary, OrderDailyDetail, StakingOrder


PAGE_SIZE = 20

# Per-day flows: summed across orders and across a page
FLOW_FIELDS = (
    "principal_release",
    "interest_release",
    "daily_af_release",
    "trading_capital",
    "forex_income",
    "withdrawn_af",
    "withdraw_fee",
)

# Running totals: summed across orders, but a page reports its last day
STOCK_FIELDS = ("cum_af_released", "af_in_system")

_SUMMED_FIELDS = FLOW_FIELDS + STOCK_FIELDS

# (order, horizon_days) -> that order's day-by-day release records
ReleaseSchedule = Callable[[StakingOrder, int], Sequence[OrderDailyDetail]]


def collect_order_details(
    orders: Sequence[StakingOrder],
    release_schedule: ReleaseSchedule,
    horizon: int,
) -> Dict[str, List[OrderDailyDetail]]:
    """Run the external release generator once per order, keyed by order id."""
    return {order.id: list(release_schedule(order, horizon)) for order in orders}


def aggregate_all_orders(
    order_details: Mapping[str, Sequence[OrderDailyDetail]],
    total_days: int,
) -> List[OrderDailyDetail]:
    """Fold every order's daily records into one record per day 1..total_days.

    Flows and stocks are summed per day. af_price is taken from whichever
    record for that day was applied last, in iteration order; it is not an
    average. Records outside the horizon are skipped.
    """
    if total_days < 0:
        raise InvalidArgument("total_days must be >= 0")

    totals = np.zeros((total_days, len(_SUMMED_FIELDS)), dtype=float)
    prices = np.zeros(total_days, dtype=float)

    for details in order_details.values():
        for d in details:
            if d.day < 1 or d.day > total_days:
                continue
            idx = d.day - 1
            totals[idx] += np.array([getattr(d, f) for f in _SUMMED_FIELDS], dtype=float)
            prices[idx] = d.af_price

    rows = []
    for idx in range(total_days):
        values = {f: float(totals[idx, j]) for j, f in enumerate(_SUMMED_FIELDS)}
        rows.append(
            OrderDailyDetail(
                day=idx + 1,
                order_id="all",
                af_price=float(prices[idx]),
                **values,
            )
        )
    return rows


def compute_summary(rows: Sequence[OrderDailyDetail]) -> DailySummary:
    """Subtotal for a window of rows."""
    if not rows:
        return DailySummary()

    flows = np.array([[getattr(r, f) for f in FLOW_FIELDS] for r in rows], dtype=float).sum(axis=0)
    last = rows[-1]
    return DailySummary(
        **{f: float(flows[j]) for j, f in enumerate(FLOW_FIELDS)},
        **{f: getattr(last, f) for f in STOCK_FIELDS},
    )


def page_count(total_rows: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, math.ceil(total_rows / page_size))


def paginate(rows: Sequence[OrderDailyDetail], page: int, page_size: int = PAGE_SIZE) -> DailyPage:
    """Slice one page of rows; out-of-range page indexes clamp to the nearest valid page."""
    if page_size < 1:
        raise InvalidArgument("page_size must be >= 1")

    total_pages = page_count(len(rows), page_size)
    page = min(max(0, page), total_pages - 1)
    start = page * page_size
    page_rows = list(rows[start:start + page_size])

    return DailyPage(
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        total_rows=len(rows),
        rows=page_rows,
        summary=compute_summary(page_rows),
    )
