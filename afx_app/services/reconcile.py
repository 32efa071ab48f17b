"""Merge persisted simulation state with the current defaults.

Persisted snapshots evolve by gaining fields over time and carry no version
tag, so every missing field is filled from the defaults here. The pool is
trusted unless it is missing or an empty ledger disagrees with the seeded
price.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from afx_app.defaults import DEFAULT_RELEASE_SPLIT, FALLBACK_AF_PRICE, default_config
from afx_app.errors import InvalidArgument
from afx_app.schemas import AAMPool, SimulationConfig, SimulationState, StakingOrder
from afx_app.services.aam_pool import initial_aam_pool
from afx_app.services.state import new_order_id

logger = logging.getLogger(__name__)

PRICE_MATCH_TOLERANCE = 0.0001

# Backfills for orders saved before these fields existed
_ORDER_BACKFILL = {
    "mode": "package",
    "start_day": 0,
    "withdraw_percent": 60.0,
    "total_af_to_release": 0.0,
    "af_withdrawn": 0.0,
    "af_kept_in_system": 0.0,
}


def _dump(value) -> Dict[str, Any]:
    if value is None:
        return {}
    if hasattr(value, "model_dump"):
        return value.model_dump()
    return dict(value)


def _merge_positional(persisted: Optional[Sequence[Any]], defaults: List[Any]) -> Optional[List[Dict[str, Any]]]:
    """Overlay persisted entries onto the default entry at the same index."""
    if persisted is None:
        return None
    merged = []
    for i, entry in enumerate(persisted):
        base = defaults[i].model_dump() if i < len(defaults) else {}
        overlay = {k: v for k, v in _dump(entry).items() if v is not None}
        merged.append({**base, **overlay})
    return merged


def merge_config(persisted: Mapping[str, Any], defaults: SimulationConfig) -> SimulationConfig:
    """Fill every field missing from a persisted config from the defaults."""
    base = defaults.model_dump()
    data = {k: v for k, v in persisted.items() if k in SimulationConfig.model_fields and v is not None}

    raw_packages = persisted.get("package_configs")
    packages = _merge_positional(raw_packages, defaults.package_configs)
    if packages is None:
        data["package_configs"] = base["package_configs"]
    else:
        for raw, pkg in zip(raw_packages, packages):
            # af_release_rate was renamed to release_multiplier
            raw = _dump(raw)
            if raw.get("release_multiplier") is None and raw.get("af_release_rate") is not None:
                pkg["release_multiplier"] = raw["af_release_rate"]
            pkg.pop("af_release_rate", None)
            for field, value in DEFAULT_RELEASE_SPLIT.items():
                if pkg.get(field) is None:
                    pkg[field] = value
        data["package_configs"] = packages

    days_configs = _merge_positional(persisted.get("days_configs"), defaults.days_configs)
    data["days_configs"] = base["days_configs"] if days_configs is None else days_configs

    try:
        return SimulationConfig.model_validate({**base, **data})
    except ValidationError as exc:
        raise InvalidArgument(f"Persisted config is malformed: {exc}") from exc


def migrate_orders(persisted_orders: Optional[Sequence[Any]]) -> List[StakingOrder]:
    orders = []
    for raw in persisted_orders or []:
        data = _dump(raw)
        for field, value in _ORDER_BACKFILL.items():
            if data.get(field) is None:
                data[field] = value
        if not data.get("id"):
            data["id"] = new_order_id()
        try:
            orders.append(StakingOrder.model_validate(data))
        except ValidationError as exc:
            raise InvalidArgument(f"Persisted order is malformed: {exc}") from exc
    return orders


def expected_initial_price(config: SimulationConfig) -> float:
    if config.initial_lp_af > 0:
        return config.initial_lp_usdc / config.initial_lp_af
    return FALLBACK_AF_PRICE


def pool_is_stale(persisted_pool: Optional[AAMPool], persisted_orders: Optional[Sequence[Any]], config: SimulationConfig) -> bool:
    if persisted_pool is None:
        return True
    # An absent ledger is not an empty one; only an explicitly empty list counts
    if persisted_orders is not None and len(persisted_orders) == 0:
        return abs(persisted_pool.af_price - expected_initial_price(config)) > PRICE_MATCH_TOLERANCE
    return False


def reconcile(
    persisted: Optional[Mapping[str, Any]],
    persisted_orders: Optional[Sequence[Any]],
    persisted_pool: Optional[Any],
    defaults: Optional[SimulationConfig] = None,
) -> Tuple[SimulationConfig, List[StakingOrder], AAMPool]:
    """Return (config, orders, pool) reconciled against the defaults."""
    defaults = defaults or default_config()
    config = merge_config(persisted or {}, defaults)
    orders = migrate_orders(persisted_orders)

    pool = None
    if persisted_pool is not None:
        fresh = initial_aam_pool(config).model_dump()
        try:
            pool = AAMPool.model_validate({**fresh, **_dump(persisted_pool)})
        except ValidationError as exc:
            raise InvalidArgument(f"Persisted pool is malformed: {exc}") from exc

    if pool_is_stale(pool, persisted_orders, config):
        logger.info(
            f"Resetting AAM pool to initial reserves "
            f"(usdc={config.initial_lp_usdc}, af={config.initial_lp_af})"
        )
        pool = initial_aam_pool(config)

    return config, orders, pool


def load_state(snapshot: Optional[Mapping[str, Any]], defaults: Optional[SimulationConfig] = None) -> SimulationState:
    """Build the starting state from a raw {config, orders, pool} snapshot."""
    defaults = defaults or default_config()
    if not snapshot:
        return SimulationState(config=defaults, orders=(), pool=initial_aam_pool(defaults), current_day=0)

    config, orders, pool = reconcile(
        snapshot.get("config"),
        snapshot.get("orders"),
        snapshot.get("pool"),
        defaults,
    )
    current_day = snapshot.get("current_day")
    try:
        current_day = max(0, int(current_day)) if current_day is not None else 0
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"Persisted current_day is malformed: {current_day!r}") from exc

    return SimulationState(
        config=config,
        orders=orders,
        pool=pool,
        current_day=current_day,
    )


def dump_state(state: SimulationState) -> Dict[str, Any]:
    """Snapshot shape handed to the save hook."""
    return {
        "config": state.config.model_dump(),
        "orders": [o.model_dump() for o in state.orders],
        "pool": state.pool.model_dump(),
        "current_day": state.current_day,
    }
