#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Main application entry point - OpenAI compatible relay for NanoBanana
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from nanobanana_api.config import settings
from nanobanana_api.exceptions import APIError, NotFoundError, api_error_response, error_response
from nanobanana_api.helpers import info_log
from nanobanana_api.middleware import CorsHeadersMiddleware
from nanobanana_api.openai_api import router as openai_router
from nanobanana_api.services.upstream_client import upstream_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    info_log(
        "🍌 NanoBanana API 已启动",
        port=settings.PORT,
        upstream=settings.UPSTREAM_URL,
        open_access=settings.open_access,
    )
    yield
    await upstream_client.aclose()


# Create FastAPI app
app = FastAPI(
    title="NanoBanana OpenAI Compatible API",
    description="OpenAI-compatible relay for the nanobananaprompt.org chat service",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

app.add_middleware(CorsHeadersMiddleware)

# Include API router
app.include_router(openai_router)


@app.exception_handler(APIError)
async def handle_api_error(request: Request, exc: APIError):
    return api_error_response(exc)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    """Routing misses (unknown path or method) render as not_found"""
    if exc.status_code in (404, 405):
        return api_error_response(NotFoundError(request.url.path))
    return error_response(str(exc.detail), exc.status_code, "internal_error")


if __name__ == "__main__":
    import uvicorn
    import os
    import platform
    import multiprocessing

    if platform.system() == "Windows":
        workers = 1
    else:
        # (2 × CPU核心数) + 1，环境变量可覆盖
        cpu_count = multiprocessing.cpu_count()
        default_workers = (2 * cpu_count) + 1
        workers = int(os.getenv("UVICORN_WORKERS", str(default_workers)))

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.PORT,
        workers=workers,
        http="httptools",
        reload=False,
        log_level="info",
    )
