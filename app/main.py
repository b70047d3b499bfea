"""ASGI entry point for the college records engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import api_router
from app.core.config import Settings, settings
from app.core.exceptions import AppException
from app.engine import RecordsEngine
from app.middleware.logging import RequestLoggingMiddleware
from app.schemas.common import error_body

QUIET_LOGGERS = ("sqlalchemy", "sqlalchemy.engine", "aiosqlite", "python_multipart")


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


configure_logging(settings.DEBUG)
logger = logging.getLogger(__name__)

API_DESCRIPTION = """
Student marks, grading and class ranking for a college.

Every mark change re-evaluates the subject status, the student's aggregates
and the rank of everyone in the class. Students and marks can be imported
from and exported to Excel or CSV.

Errors share one body: `{"success": false, "error": {"code", "message", "details"}}`.
"""


def create_application(
    app_settings: Settings | None = None,
    engine: RecordsEngine | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    An ``engine`` passed in is used as is; otherwise one is built from
    settings at startup.
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[STARTUP] {app_settings.APP_NAME} v{app_settings.APP_VERSION}")
        app.state.engine = engine or await RecordsEngine.from_settings(app_settings)
        yield
        logger.info("[SHUTDOWN] Closing records engine")
        await app.state.engine.close()

    app = FastAPI(
        title=app_settings.APP_NAME,
        version=app_settings.APP_VERSION,
        description=API_DESCRIPTION,
        openapi_url=f"{app_settings.API_V1_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        body = error_body("VALIDATION_ERROR", "Request validation failed", {"errors": jsonable_errors(exc)})
        return JSONResponse(status_code=422, content=body)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"[ERROR] Unhandled exception on {request.method} {request.url.path}")
        body = error_body("INTERNAL_ERROR", "An internal server error occurred")
        return JSONResponse(status_code=500, content=body)

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "healthy", "app": app_settings.APP_NAME, "version": app_settings.APP_VERSION}

    app.include_router(api_router, prefix=app_settings.API_V1_PREFIX)
    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Request validation errors without the raw exception objects pydantic puts in ``ctx``."""
    cleaned = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        cleaned.append(error)
    return cleaned


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
