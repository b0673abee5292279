# porteria/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, the station lifespan
(context, central pull, timers) and all routers.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from porteria.config import Settings, settings as default_settings
from porteria.context import AppContext
from porteria.exceptions import PersistenceError, PorteriaError
from porteria.routers import auth, dashboard, health, reservations, shifts, vehicles
from porteria.services.scheduler import start_background_jobs, stop_background_jobs
from porteria.utils.logger import get_logger

logger = get_logger(__name__)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth for the booth API.
    Login and health stay open so a booth can sign in and be monitored.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    OPEN_PATHS = {"/api/login", "/api/health", "/docs", "/redoc", "/openapi.json"}

    def __init__(self, app, api_key: str):
        super().__init__(app)
        self.api_key = api_key

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.OPEN_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != self.api_key:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "API key inválida o ausente"},
            )
        return await call_next(request)


# ── Lifespan ─────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    conf: Settings = app.state.settings
    logger.info("🚀 Porteria backend starting up...")

    if getattr(app.state, "context", None) is None:
        app.state.context = AppContext.build(conf)
    ctx: AppContext = app.state.context
    logger.info("✅ Local database ready")
    logger.info(f"📅 Reservations module: {'enabled' if ctx.reservations.available else 'disabled'}")

    if conf.CENTRAL_SYNC_ON_STARTUP:
        # Bounded by the pull timeout; startup continues on local data if central is down
        await asyncio.to_thread(ctx.sync.pull_from_central, ctx.session_factory)

    if conf.ENABLE_BACKGROUND_JOBS:
        ctx.tasks = start_background_jobs(ctx)

    logger.info(f"🌐 Listening on http://{conf.BACKEND_HOST}:{conf.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")
    try:
        yield
    finally:
        logger.info("🛑 Porteria backend shutting down...")
        await stop_background_jobs(ctx.tasks)
        await ctx.aclose()


# ── Error rendering ──────────────────────────────────────────────────────────
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _register_exception_handlers(app: FastAPI):

    @app.exception_handler(PorteriaError)
    async def porteria_error_handler(request: Request, exc: PorteriaError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
            message = f"{field}: {first.get('msg')}" if field else first.get("msg")
        else:
            message = "Solicitud inválida"
        return _error(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(SQLAlchemyError)
    async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Local store failure on {request.url.path}: {exc}", exc_info=True)
        error = PersistenceError("Error de base de datos local")
        return _error(error.status_code, error.message)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error interno del servidor")


def create_app(context: Optional[AppContext] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the station API. A prebuilt `context` is used as is; otherwise the
    lifespan builds one from `settings`.
    """
    conf = context.settings if context is not None else (settings or default_settings)

    app = FastAPI(
        title="Porteria Parking POS API",
        description="Local parking booth: check-in, fees, shifts, web reservations and master sync.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = conf
    app.state.context = context

    # ── CORS (allow the booth UI on the same machine / LAN) ──────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if conf.API_KEY:
        app.add_middleware(APIKeyMiddleware, api_key=conf.API_KEY)

    # ── Request Timing Middleware ────────────────────────────────────────────
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        duration = round((time.time() - start) * 1000, 2)
        logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
        return response

    _register_exception_handlers(app)

    # ── Routers ──────────────────────────────────────────────────────────────
    app.include_router(vehicles.router,     prefix="/api", tags=["🚗 Vehicles"])
    app.include_router(dashboard.router,    prefix="/api", tags=["🅿️  Occupancy"])
    app.include_router(shifts.router,       prefix="/api", tags=["💵 Shifts"])
    app.include_router(reservations.router, prefix="/api", tags=["📅 Reservations"])
    app.include_router(auth.router,         prefix="/api", tags=["🔑 Operators"])
    app.include_router(health.router,       prefix="/api", tags=["💚 Health"])

    return app


app = create_app()


def run():
    uvicorn.run("porteria.main:app", host=default_settings.BACKEND_HOST, port=default_settings.BACKEND_PORT)
