# surplus/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from surplus.core.config import Settings, get_settings
from surplus.core.errors import StoreError, SurplusError
from surplus.core.logging import bind_context, clear_context, configure_logging, get_logger
from surplus.db import build_store, close_store, ensure_indexes
from surplus.repos.base import DocumentStore
from surplus.routers import listings as listings_router
from surplus.routers import profiles as profiles_router
from surplus.services.claims import ClaimWorkflow
from surplus.services.geolocate import Geocoder

log = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    geocoder: Optional[Geocoder] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.store = store or build_store(settings)
        await ensure_indexes(app.state.store)
        app.state.claims = ClaimWorkflow(app.state.store)
        app.state.geocoder = geocoder or Geocoder(settings)
        log.info("app.started", name=settings.app_name)

        yield

        if geocoder is None:
            await app.state.geocoder.aclose()
        if store is None:
            close_store(app.state.store)

    app = FastAPI(lifespan=lifespan, title=settings.app_name)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        clear_context()
        bind_context(method=request.method, path=request.url.path)
        return await call_next(request)

    @app.exception_handler(SurplusError)
    async def surplus_error(request: Request, exc: SurplusError):
        if isinstance(exc, StoreError):
            log.error("request.store_failed", detail=exc.detail)
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)

    app.include_router(profiles_router.router)   # /api/profiles
    app.include_router(listings_router.router)   # /api/listings

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
