from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

import asyncpg
from fastapi import FastAPI

from qmaster.api.routes import auth, counters, display, kiosk, metrics, ping, reports, staff, system, tickets
from qmaster.core.config import Settings, get_settings
from qmaster.core.logging import configure_logging, init_tracer, shutdown_tracer
from qmaster.insights import GeminiClient
from qmaster.queue.service import QueueService
from qmaster.queue.store import InMemoryQueueStateStore, PostgresQueueStateStore, QueueStateStore


def build_gemini_client(settings: Settings) -> GeminiClient:
    return GeminiClient(
        api_key=settings.gemini_api_key,
        base_url=settings.gemini_base_url,
        report_model=settings.gemini_report_model,
        tts_model=settings.gemini_tts_model,
        timeout=settings.gemini_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.settings = settings
    app.state.logger = logger
    app.state.tracer_provider = tracer_provider

    pool: asyncpg.Pool | None = None
    store: QueueStateStore = InMemoryQueueStateStore()
    if settings.state_backend == "postgres":
        try:
            pool = await asyncpg.create_pool(dsn=settings.postgres_dsn, min_size=1, max_size=5)
            postgres_store = PostgresQueueStateStore(pool)
            await postgres_store.ensure_schema()
            store = postgres_store
        except (OSError, asyncpg.PostgresError):
            logger.exception("PostgreSQL state store unavailable; keeping queue state in memory")
            if pool is not None:
                await pool.close()
                pool = None

    service = QueueService(store, report_timezone=ZoneInfo(settings.report_timezone))
    await service.load()
    app.state.queue_service = service
    app.state.gemini_client = build_gemini_client(settings)
    try:
        yield
    finally:
        if pool is not None:
            await pool.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(metrics.router)
    app.include_router(auth.router)
    app.include_router(kiosk.router)
    app.include_router(display.router)
    app.include_router(tickets.router)
    app.include_router(counters.router)
    app.include_router(staff.router)
    app.include_router(system.router)
    app.include_router(reports.router)
    return app


app = create_app()
