"""FastAPI application exposing endpoints and probe history."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, get_database_url, settings as default_settings
from .database import close_db, create_engine, create_session_factory, init_db
from .errors import StoreError
from .routers import endpoints_router
from .services.prober import Prober
from .services.session import MonitoringSession
from .services.store import EndpointStore

logger = logging.getLogger(__name__)


def create_app(config: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan - startup and shutdown."""
        engine = create_engine(get_database_url(config))
        try:
            await init_db(engine)
            logger.info("Database initialized")

            store = EndpointStore(create_session_factory(engine))
            app.state.store = store
            app.state.session = None

            if config.monitor_on_startup:
                session = MonitoringSession(
                    store,
                    Prober(timeout=config.probe_timeout_seconds, verify=config.probe_verify_tls),
                )
                # A store failure here aborts startup
                await session.start()
                app.state.session = session
                logger.info("Monitoring session started")
        except Exception:
            logger.error("Startup failed, closing database")
            await close_db(engine)
            raise

        yield

        if app.state.session:
            await app.state.session.stop()
        await close_db(engine)
        logger.info("Shutdown complete")

    app = FastAPI(
        title="endpoint-watch",
        description="Periodic HTTP endpoint probing with persistent history",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.include_router(endpoints_router)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error(f"Store error on {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.get("/health")
    async def health_check(request: Request):
        session = getattr(request.app.state, "session", None)
        return {
            "status": "healthy",
            "monitoring": bool(session and session.running),
        }

    return app
