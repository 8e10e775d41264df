from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from minilibrary.api import routes
from minilibrary.core.config import Settings
from minilibrary.core.database import init_db, make_engine, make_session_factory
from minilibrary.core.errors import LibraryError
from minilibrary.core.logging_config import configure_logging
from minilibrary.core.responses import error_response
from minilibrary.notifications.email import Mailer
from minilibrary.notifications.scheduler import build_scheduler

logger = logging.getLogger("minilibrary")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    engine = make_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Creating database tables (if not present)...")
        init_db(engine)
        scheduler = None
        if settings.scheduler_enabled:
            scheduler = build_scheduler(settings, app.state.session_factory, app.state.mailer)
            scheduler.start()
        yield
        if scheduler:
            scheduler.stop()
        engine.dispose()

    app = FastAPI(title="Mini Library API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.mailer = Mailer(settings)
    app.include_router(routes.router)

    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        return error_response(exc.status_code, exc.message, exc.error)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(400, "Invalid request", exc.errors())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(OperationalError)
    async def store_unavailable_handler(request: Request, exc: OperationalError):
        logger.error(f"Database unavailable: {exc}")
        return error_response(503, "Service temporarily unavailable")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(500, "Internal server error")

    return app


def run() -> None:
    """Serve with `uvicorn minilibrary.main:create_app --factory`; the app is only built here."""
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run("minilibrary.main:create_app", factory=True, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
