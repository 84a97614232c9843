import logging
import logging.config
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import Settings
from app.errors import AppError, client_message
from app.routers.homepage import limiter, router as homepage_router
from app.services.cache import ContentCache
from app.services.source import ContentSource, FileContentSource
from app.services.watcher import ChangeNotifier, WatchdogNotifier

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
        },
        "root": {"level": "INFO", "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "no-referrer",
}


def create_app(
    settings: Optional[Settings] = None,
    source: Optional[ContentSource] = None,
    notifier: Optional[ChangeNotifier] = None,
) -> FastAPI:
    """Build the application.

    The lifespan creates the process-wide :class:`ContentCache`, loads the
    content, and stops the file watcher on shutdown.  *source* and *notifier*
    default to the configured content file and a watchdog watcher on it.
    """
    settings = settings or Settings.from_env()
    if source is None:
        source = FileContentSource(settings.content_file)
    if notifier is None and settings.watch:
        notifier = WatchdogNotifier(settings.content_file, settings.watch_debounce_ms / 1000)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cache = ContentCache(source, ttl_seconds=settings.cache_ttl_seconds)
        app.state.cache = cache
        await cache.init(notifier)
        try:
            yield
        finally:
            await cache.shutdown()

    app = FastAPI(
        title="Homepage Content API",
        description="Serves the homepage hero and the paginated formation catalog.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Rate-limiting state
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in _SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        log = logger.error if exc.status >= 500 else logger.warning
        log(
            "%s %s failed with %s: %s",
            request.method,
            request.url.path,
            exc.status,
            exc.message,
            extra={"kind": exc.kind},
        )
        message = client_message(exc.status, exc.message, exc.public_message, settings.production)
        return JSONResponse(status_code=exc.status, content={"success": False, "error": message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        logger.warning("%s %s failed with %s", request.method, request.url.path, exc.status_code)
        public = "Route not found" if exc.status_code == 404 else None
        message = client_message(exc.status_code, str(exc.detail), public, settings.production)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception for %s", request.url)
        message = client_message(500, str(exc), None, settings.production)
        return JSONResponse(status_code=500, content={"success": False, "error": message})

    app.include_router(homepage_router)

    @app.get("/", summary="Health check")
    async def root() -> dict:
        cache: ContentCache = app.state.cache
        return {"success": True, "status": cache.state.value}

    return app


app = create_app()


if __name__ == "__main__":
    _settings = app.state.settings
    logger.info("Homepage API listening on http://localhost:%s", _settings.port)
    uvicorn.run(app, host="0.0.0.0", port=_settings.port)
