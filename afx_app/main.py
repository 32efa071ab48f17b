import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from afx_app.api.routes import router as api_router
from afx_app.persistence import JsonStateFile
from afx_app.settings import Settings, get_settings
from afx_app.store import SimulationStore
from afx_app.utils.json_safety import SafeJSONResponse


def build_store(settings: Settings) -> SimulationStore:
    if settings.state_file is None:
        return SimulationStore()
    state_file = JsonStateFile(settings.state_file)
    return SimulationStore(load=state_file.load, save=state_file.save)


def create_app(settings: Optional[Settings] = None, store: Optional[SimulationStore] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="AFx Deposit Simulator",
        default_response_class=SafeJSONResponse,
    )
    app.state.settings = settings
    app.state.store = store or build_store(settings)

    # ── CORS (kept for local dev convenience) ──
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[f"http://{settings.host}:{settings.port}", f"http://localhost:{settings.port}"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── API routes ──
    app.include_router(api_router, prefix="/api")

    return app


def run():
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
