"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..app import Application
from ..errors import ChatError
from .routes.auth import create_auth_router
from .routes.control import create_control_router
from .routes.messaging import create_messaging_router
from .routes.observability import create_observability_router
from .routes.realtime import create_realtime_router


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application around one Application."""
    application = application or Application()

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        """Manage application lifespan."""
        await application.start()
        yield
        await application.stop()

    fastapi_app = FastAPI(
        title="Approved Chat API",
        description="Whitelist-only realtime chat room",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.application = application

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=list(application.settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @fastapi_app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @fastapi_app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    fastapi_app.include_router(create_auth_router(application))
    fastapi_app.include_router(create_messaging_router(application))
    fastapi_app.include_router(create_observability_router(application))
    fastapi_app.include_router(create_control_router(application))
    fastapi_app.include_router(create_realtime_router(application))

    return fastapi_app
