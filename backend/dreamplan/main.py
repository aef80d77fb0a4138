"""FastAPI application for the DreamPlan backend."""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from dreamplan.api.routes.chat import router as chat_router
from dreamplan.api.routes.functions import router as functions_router
from dreamplan.api.routes.marketplace import router as marketplace_router
from dreamplan.api.routes.notifications import router as notifications_router
from dreamplan.api.routes.plans import router as plans_router
from dreamplan.api.routes.preferences import router as preferences_router
from dreamplan.api.routes.task import router as task_router
from dreamplan.core.config import settings
from dreamplan.core.logging import configure_logging
from dreamplan.core.middleware import RequestIDMiddleware
from dreamplan.observability.client import init_opik
from dreamplan.observability.tracing import trace

# Browser clients send the anon key and client info headers with every call.
CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

ROUTERS = (
    functions_router,
    plans_router,
    marketplace_router,
    task_router,
    chat_router,
    preferences_router,
    notifications_router,
)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    init_opik()
    yield


def create_app() -> FastAPI:
    configure_logging(log_level=settings.log_level)
    application = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
    )
    for router in ROUTERS:
        application.include_router(router)

    @application.get("/health", tags=["health"], summary="Readiness check")
    async def health_check(request: Request) -> dict[str, str]:
        with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
            return {"status": "ok"}

    return application


app = create_app()
