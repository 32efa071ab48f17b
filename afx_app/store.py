import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from afx_app.schemas import OrderDailyDetail, OrderInput, SimulationConfig, SimulationState
from afx_app.services import state as transitions
from afx_app.services.daily import ReleaseSchedule, aggregate_all_orders, collect_order_details
from afx_app.services.reconcile import dump_state, load_state

logger = logging.getLogger(__name__)

LoadHook = Callable[[], Optional[Dict[str, Any]]]
SaveHook = Callable[[Dict[str, Any]], None]


class SimulationStore:
    """
    Holds the current SimulationState and applies transitions to it.

    Writers are serialised by a lock; each mutation swaps the state reference
    in a single assignment, so a reader sees either the old or the new state.
    The save hook runs after every mutation that changed something.
    """

    def __init__(
        self,
        load: Optional[LoadHook] = None,
        save: Optional[SaveHook] = None,
        defaults: Optional[SimulationConfig] = None,
    ):
        self._lock = threading.RLock()
        self._save = save
        snapshot = load() if load else None
        try:
            self._state = load_state(snapshot, defaults)
        except (ValueError, TypeError, AttributeError) as e:
            # InvalidArgument is a ValueError; a snapshot of the wrong shape counts as none
            logger.warning(f"Discarding saved state that failed validation: {e}")
            self._state = load_state(None, defaults)

    @property
    def state(self) -> SimulationState:
        return self._state

    def _commit(self, transition, *args) -> SimulationState:
        with self._lock:
            new_state = transition(self._state, *args)
            if new_state is not self._state:
                self._state = new_state
                self._persist(new_state)
            return new_state

    def _persist(self, state: SimulationState) -> None:
        if self._save is None:
            return
        try:
            self._save(dump_state(state))
        except Exception:
            logger.exception("Failed to save simulation state")

    # ── Orders ──

    def add_order(self, order: OrderInput) -> str:
        with self._lock:
            new_state, order_id = transitions.add_order(self._state, order)
            self._state = new_state
            self._persist(new_state)
        logger.info(f"Added order {order_id}: amount={order.amount}")
        return order_id

    def remove_order(self, order_id: str) -> SimulationState:
        return self._commit(transitions.remove_order, order_id)

    def clear_orders(self) -> SimulationState:
        return self._commit(transitions.clear_orders)

    def list_orders(self):
        return list(self._state.orders)

    # ── Config ──

    def set_config(self, updates: Dict[str, Any]) -> SimulationState:
        return self._commit(transitions.set_config, updates)

    def update_package_config(self, tier: int, updates: Dict[str, Any]) -> SimulationState:
        return self._commit(transitions.update_package_config, tier, updates)

    def update_days_config(self, days: int, updates: Dict[str, Any]) -> SimulationState:
        return self._commit(transitions.update_days_config, days, updates)

    def reset_config(self) -> SimulationState:
        return self._commit(transitions.reset_config)

    def reset_all(self) -> SimulationState:
        return self._commit(transitions.reset_all)

    # ── Pool & clock ──

    def reset_pool(self) -> SimulationState:
        return self._commit(transitions.reset_pool)

    def set_simulation_day(self, day: int) -> SimulationState:
        return self._commit(transitions.set_simulation_day, day)

    def advance_to_day(self, day: int) -> SimulationState:
        return self._commit(transitions.advance_to_day, day)

    # ── Reporting ──

    def daily_report(self, release_schedule: ReleaseSchedule, total_days: int) -> List[OrderDailyDetail]:
        """Aggregate the ledger's release records over a day horizon."""
        state = self._state
        details = collect_order_details(state.orders, release_schedule, total_days)
        return aggregate_all_orders(details, total_days)
