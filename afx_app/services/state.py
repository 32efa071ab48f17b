"""State transitions for the simulation: order ledger and live config edits.

Every function takes a SimulationState and returns a new one. Inputs are
validated before anything is built, so a rejected call leaves the caller's
state untouched and raises InvalidArgument.
"""

import uuid
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from afx_app.defaults import default_config
from afx_app.errors import InvalidArgument
from afx_app.schemas import (
    DaysConfig,
    OrderInput,
    PackageConfig,
    SimulationConfig,
    SimulationState,
    StakingOrder,
)
from afx_app.services.aam_pool import apply_deposit, initial_aam_pool


_LP_SEED_FIELDS = ("initial_lp_usdc", "initial_lp_af")


def new_order_id() -> str:
    return uuid.uuid4().hex


def _validated(model_cls, data):
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise InvalidArgument(str(exc)) from exc


def initial_state(config: Optional[SimulationConfig] = None) -> SimulationState:
    config = config or default_config()
    return SimulationState(config=config, orders=(), pool=initial_aam_pool(config), current_day=0)


# ── Order ledger ──

def add_order(state: SimulationState, order: OrderInput) -> Tuple[SimulationState, str]:
    """Append a deposit and run it through the pool in one transition."""
    config = state.config
    mode = order.mode or config.simulation_mode
    start_day = order.start_day if order.start_day is not None else state.current_day

    staking_order = _validated(
        StakingOrder,
        {
            "id": order.id or new_order_id(),
            "amount": order.amount,
            "mode": mode,
            "duration_days": order.duration_days,
            "package_tier": order.package_tier,
            "start_day": start_day,
            "withdraw_percent": order.withdraw_percent,
        },
    )

    if staking_order.mode == "package":
        if staking_order.package_tier is None:
            raise InvalidArgument("package_tier is required for package mode orders")
        if config.package_for(staking_order.package_tier) is None:
            raise InvalidArgument(f"Unknown package tier: {staking_order.package_tier}")
    elif staking_order.duration_days is None:
        raise InvalidArgument("duration_days is required for days mode orders")

    if any(o.id == staking_order.id for o in state.orders):
        raise InvalidArgument(f"Duplicate order id: {staking_order.id}")

    pool = apply_deposit(state.pool, config, staking_order.amount)
    new_state = state.model_copy(
        update={"orders": (*state.orders, staking_order), "pool": pool}
    )
    return new_state, staking_order.id


def remove_order(state: SimulationState, order_id: str) -> SimulationState:
    """Drop one order; absent ids are ignored. The pool is not rolled back."""
    remaining = tuple(o for o in state.orders if o.id != order_id)
    if len(remaining) == len(state.orders):
        return state
    return state.model_copy(update={"orders": remaining})


def clear_orders(state: SimulationState) -> SimulationState:
    return state.model_copy(update={"orders": ()})


# ── Pool ──

def reset_pool(state: SimulationState) -> SimulationState:
    return state.model_copy(update={"pool": initial_aam_pool(state.config)})


# ── Live config edits ──

def set_config(state: SimulationState, updates: Dict[str, Any]) -> SimulationState:
    """Merge a partial config edit over the current config.

    Any change to the initial LP reserves invalidates the simulated history:
    the pool is re-seeded, the ledger is cleared and the day goes back to 0.
    """
    _reject_unknown(SimulationConfig, updates, "config")

    current = state.config
    merged = _validated(SimulationConfig, {**current.model_dump(), **updates})

    lp_seed_changed = any(
        field in updates and getattr(merged, field) != getattr(current, field)
        for field in _LP_SEED_FIELDS
    )
    if lp_seed_changed:
        return SimulationState(
            config=merged,
            orders=(),
            pool=initial_aam_pool(merged),
            current_day=0,
        )
    return state.model_copy(update={"config": merged})


def _reject_unknown(model_cls, updates: Dict[str, Any], label: str) -> None:
    unknown = set(updates) - set(model_cls.model_fields)
    if unknown:
        raise InvalidArgument(f"Unknown {label} fields: {', '.join(sorted(unknown))}")


def update_package_config(state: SimulationState, tier: int, updates: Dict[str, Any]) -> SimulationState:
    """Patch the package with the given tier value."""
    _reject_unknown(PackageConfig, updates, "package")
    if "tier" in updates and updates["tier"] != tier:
        raise InvalidArgument("tier is the package identity and cannot be changed")
    if state.config.package_for(tier) is None:
        raise InvalidArgument(f"Unknown package tier: {tier}")

    packages = [
        _validated(PackageConfig, {**pkg.model_dump(), **updates}) if pkg.tier == tier else pkg
        for pkg in state.config.package_configs
    ]
    config = state.config.model_copy(update={"package_configs": packages})
    return state.model_copy(update={"config": config})


def update_days_config(state: SimulationState, days: int, updates: Dict[str, Any]) -> SimulationState:
    """Patch the days-mode tier with the given duration."""
    _reject_unknown(DaysConfig, updates, "days tier")
    if "days" in updates and updates["days"] != days:
        raise InvalidArgument("days is the tier identity and cannot be changed")
    if not any(dc.days == days for dc in state.config.days_configs):
        raise InvalidArgument(f"Unknown days tier: {days}")

    days_configs = [
        _validated(DaysConfig, {**dc.model_dump(), **updates}) if dc.days == days else dc
        for dc in state.config.days_configs
    ]
    config = state.config.model_copy(update={"days_configs": days_configs})
    return state.model_copy(update={"config": config})


def reset_config(state: SimulationState) -> SimulationState:
    """Restore default parameters; orders and pool are kept as they are."""
    return state.model_copy(update={"config": default_config(), "current_day": 0})


def reset_all(state: SimulationState) -> SimulationState:
    return initial_state()


# ── Simulation clock ──

def set_simulation_day(state: SimulationState, day: int) -> SimulationState:
    return state.model_copy(update={"current_day": max(0, int(day))})


def advance_to_day(state: SimulationState, day: int) -> SimulationState:
    """Move the clock forward only; earlier days are ignored."""
    return state.model_copy(update={"current_day": max(state.current_day, int(day))})
