from afx_app.services.aam_pool import apply_deposit, initial_aam_pool
from afx_app.services.daily import aggregate_all_orders, compute_summary, paginate
from afx_app.services.reconcile import load_state, reconcile

__all__ = [
    "aggregate_all_orders",
    "apply_deposit",
    "compute_summary",
    "initial_aam_pool",
    "load_state",
    "paginate",
    "reconcile",
]
