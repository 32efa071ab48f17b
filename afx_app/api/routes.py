import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, Request

from afx_app.errors import InvalidArgument
from afx_app.schemas import AggregateRequest, OrderInput, PageRequest, SimulationDayInput
from afx_app.services.daily import aggregate_all_orders, paginate
from afx_app.store import SimulationStore
from afx_app.utils.json_safety import sanitize_floats


router = APIRouter()


def _store(request: Request) -> SimulationStore:
    return request.app.state.store


def _page_size(request: Request, requested) -> int:
    return requested if requested is not None else request.app.state.settings.page_size


async def _apply(fn, *args):
    """Run a store call off the event loop; its save hook does file I/O."""
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, fn, *args)
    except InvalidArgument as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# ── State ──

@router.get("/state")
async def api_state(request: Request):
    return sanitize_floats(_store(request).state)


@router.post("/reset")
async def api_reset_all(request: Request):
    return sanitize_floats(await _apply(_store(request).reset_all))


# ── Config ──

@router.get("/config")
async def api_get_config(request: Request):
    return sanitize_floats(_store(request).state.config)


@router.patch("/config")
async def api_set_config(request: Request, updates: Dict[str, Any] = Body(...)):
    state = await _apply(_store(request).set_config, updates)
    return sanitize_floats(state)


@router.patch("/config/packages/{tier}")
async def api_update_package(request: Request, tier: int, updates: Dict[str, Any] = Body(...)):
    state = await _apply(_store(request).update_package_config, tier, updates)
    return sanitize_floats(state.config)


@router.patch("/config/days/{days}")
async def api_update_days(request: Request, days: int, updates: Dict[str, Any] = Body(...)):
    state = await _apply(_store(request).update_days_config, days, updates)
    return sanitize_floats(state.config)


@router.post("/config/reset")
async def api_reset_config(request: Request):
    return sanitize_floats((await _apply(_store(request).reset_config)).config)


# ── Orders ──

@router.get("/orders")
async def api_list_orders(request: Request):
    return sanitize_floats(_store(request).list_orders())


@router.post("/orders")
async def api_add_order(request: Request, data: OrderInput):
    store = _store(request)
    order_id = await _apply(store.add_order, data)
    return sanitize_floats({"id": order_id, "pool": store.state.pool})


@router.delete("/orders/{order_id}")
async def api_remove_order(request: Request, order_id: str):
    state = await _apply(_store(request).remove_order, order_id)
    return sanitize_floats(state.orders)


@router.delete("/orders")
async def api_clear_orders(request: Request):
    await _apply(_store(request).clear_orders)
    return []


# ── Pool & clock ──

@router.get("/pool")
async def api_get_pool(request: Request):
    return sanitize_floats(_store(request).state.pool)


@router.post("/pool/reset")
async def api_reset_pool(request: Request):
    return sanitize_floats((await _apply(_store(request).reset_pool)).pool)


@router.put("/simulation-day")
async def api_set_day(request: Request, data: SimulationDayInput):
    state = await _apply(_store(request).set_simulation_day, data.day)
    return {"current_day": state.current_day}


@router.post("/simulation-day/advance")
async def api_advance_day(request: Request, data: SimulationDayInput):
    state = await _apply(_store(request).advance_to_day, data.day)
    return {"current_day": state.current_day}


# ── Daily details ──

@router.post("/daily/aggregate")
async def api_aggregate(request: Request, data: AggregateRequest):
    rows = await _apply(aggregate_all_orders, data.order_details, data.total_days)
    if data.page is None:
        return sanitize_floats(rows)
    page = paginate(rows, data.page, _page_size(request, data.page_size))
    return sanitize_floats(page)


@router.post("/daily/page")
async def api_page(request: Request, data: PageRequest):
    page = paginate(data.rows, data.page, _page_size(request, data.page_size))
    return sanitize_floats(page)


@router.get("/health")
async def health():
    return {"status": "ok"}
