from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from examguard.core.config import settings
from examguard.core.database import create_db_and_tables, async_engine
from examguard.core.exceptions import register_exception_handlers
from examguard.api.v1.api import api_router
from examguard.api.v1.endpoints import realtime
from examguard.middleware.performance import PerformanceMiddleware
from examguard.middleware.timezone import TimezoneMiddleware
from examguard.services.broadcast_hub import BroadcastHub


logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting ExamGuard API...")

    await create_db_and_tables()
    logger.info("Database initialized")

    hub = BroadcastHub(heartbeat_interval=settings.ws_heartbeat_interval)
    app.state.hub = hub
    hub.start()

    yield

    logger.info("Shutting down ExamGuard API...")
    await hub.stop()
    await async_engine.dispose()
    logger.info("ExamGuard API shutdown completed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="ExamGuard API",
        description="Online exam proctoring: violation tracking, session lockout and live admin alerts",
        version="1.0.0",
        docs_url="/docs" if settings.environment == "development" else None,
        redoc_url="/redoc" if settings.environment == "development" else None,
        lifespan=lifespan,
    )

    app.add_middleware(TimezoneMiddleware)

    app.add_middleware(
        PerformanceMiddleware,
        slow_request_threshold=settings.slow_request_threshold
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(realtime.router)

    @app.get("/")
    async def read_root():
        return {
            "message": "Welcome to the ExamGuard API!",
            "version": "1.0.0",
            "realtime": "/ws",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "examguard.main:app",
        host="0.0.0.0",
        port=settings.port,
        workers=1,
        ws_ping_interval=settings.ws_ping_interval,
        ws_ping_timeout=settings.ws_ping_timeout,
    )
