import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zeladoria import __version__
from zeladoria.application import SchedulingService, configure_scheduling_service
from zeladoria.core.capacity import load_default_capacity
from zeladoria.infrastructure import InMemoryAreaRepository, SupabaseAreaRepository
from zeladoria.logging_config import setup_logging
from zeladoria.routes import areas, config, forecast
from zeladoria.settings import Settings, load_settings

logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> SchedulingService:
    default_capacity = load_default_capacity(settings.capacity_config_path)
    if settings.uses_supabase:
        repository = SupabaseAreaRepository(
            settings.supabase_url,  # type: ignore[arg-type]
            settings.supabase_service_key,  # type: ignore[arg-type]
            default_capacity=default_capacity,
        )
        logger.info("using Supabase data store at %s", settings.supabase_url)
    else:
        repository = InMemoryAreaRepository(capacity=default_capacity)
        logger.warning("Supabase is not configured; using the in-memory data store")
    return SchedulingService(repository, service=settings.service)


def create_app(settings: Settings | None = None, *, service: SchedulingService | None = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level, settings.log_file)

    scheduling_service = service or build_service(settings)
    configure_scheduling_service(scheduling_service)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        close = getattr(scheduling_service.repository, "close", None)
        if close is not None:
            close()
            logger.info("data store connection closed")

    app = FastAPI(title="Zeladoria Scheduling API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(config.router, prefix="/api")
    app.include_router(areas.router, prefix="/api")
    app.include_router(forecast.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Zeladoria Scheduling API",
                "docs": "/docs",
                "health": "/api/health",
            }
        )

    return app


app = create_app()
