from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from monetiq.api import build_router
from monetiq.config import settings
from monetiq.db import close_pool, get_pool
from monetiq.logging import configure_logging
from monetiq.services.task_spawner import spawner


def create_app() -> FastAPI:
    app = FastAPI(
        title="Monetiq",
        version=os.getenv("SERVICE_VERSION", "1.0.0"),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.include_router(build_router())

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        # bad bodies are 400 rather than 422
        messages = [str(e.get("msg")) for e in exc.errors()]
        return JSONResponse(status_code=400, content={"detail": "invalid_request", "errors": messages})

    @app.on_event("startup")
    async def startup():
        configure_logging()
        await get_pool()

    @app.on_event("shutdown")
    async def shutdown():
        await spawner.drain()
        await close_pool()

    @app.get("/")
    async def root():
        return {"service": settings.SERVICE_NAME, "status": "ok", "version": os.getenv("SERVICE_VERSION", "1.0.0")}

    return app


# uvicorn monetiq.main:app
app = create_app()
