"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from ..app import Application
from ..config import ATTACHMENTS_BASE_URL
from .routes import control, conversations


# Global application instance
_app: Application | None = None


def get_app() -> Application:
    """Get the global application instance."""
    global _app
    if not _app:
        _app = Application()
    return _app


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    application = application or get_app()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan."""
        await application.start()
        yield
        await application.stop()

    fastapi_app = FastAPI(
        title="Tutoring Chat API",
        description="Realtime chat synchronization for the tutoring dashboard",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],  # Next.js dev server
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    fastapi_app.include_router(conversations.create_conversations_router(application))
    fastapi_app.include_router(control.create_control_router(application))

    if ATTACHMENTS_BASE_URL.startswith("/"):
        fastapi_app.mount(
            ATTACHMENTS_BASE_URL,
            StaticFiles(directory=application.attachments_dir, check_dir=False),
            name="attachments",
        )

    return fastapi_app
