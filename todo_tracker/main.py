from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, load_settings
from .db import close_db, create_engine, create_session_factory, init_db
from .logging_config import setup_logging
from .routes import digest, tasks, telegram
from .telegram import TelegramClient

log = structlog.get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings: Settings = app.state.settings

    engine = create_engine(settings)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    await init_db(engine)
    log.info("app_started", version=VERSION)

    yield

    await close_db(engine)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_format, settings.log_level)

    app = FastAPI(
        title="TODO Tracker API",
        description="Task tracking backend for the todo CLI and the Telegram bot",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.telegram = TelegramClient(settings.telegram_bot_token)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        log.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
        )
        return response

    app.include_router(tasks.router, prefix="/api")
    app.include_router(telegram.router, prefix="/api")
    app.include_router(digest.router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "TODO Tracker API",
            "version": VERSION,
            "status": "running",
            "docs": "/docs",
            "health": "/health",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "todo-tracker", "version": VERSION}

    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "todo_tracker.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info",
    )


if __name__ == "__main__":
    run()
