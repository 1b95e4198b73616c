# backend/onboarding/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .deps import get_autosave
from .domain.errors import PipelineError
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.properties import router as properties_router
from .routers.screening import router as screening_router
from .routers.viewings import router as viewings_router
from .routers.applications import router as applications_router
from .routers.tenancies import router as tenancies_router
from .routers.workflow import router as workflow_router

API_PREFIX = "/api"

log = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    level = logging.WARNING if exc.status_code >= 500 else logging.INFO
    log.log(level, "%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.as_dict()))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(x) for x in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"detail": "request validation failed", "code": "validation_failed", "errors": errors},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # write out pending screening drafts before the process goes away
    get_autosave().debouncer.shutdown(flush=True)


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Tenancy Onboarding Pipeline",
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Request-ID first (observability baseline)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PipelineError, pipeline_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(properties_router, prefix=API_PREFIX)

    # Onboarding pipeline
    app.include_router(screening_router, prefix=API_PREFIX)
    app.include_router(viewings_router, prefix=API_PREFIX)
    app.include_router(applications_router, prefix=API_PREFIX)
    app.include_router(tenancies_router, prefix=API_PREFIX)

    app.include_router(workflow_router, prefix=API_PREFIX)
    return app


app = create_app()
