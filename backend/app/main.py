import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from scholargy.errors import (
    ScholargyError,
    ValidationError,
    SourceUnavailable,
    ContextOverflow,
)

from backend.app.config import AppConfig
from backend.app.api.routes_query import router as query_router
from backend.app.api.schemas import ErrorResponse
from backend.app.dependencies import (
    get_answer_service,
    close_clients,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle hooks.

    Builds the shared clients once at startup and
    closes them at shutdown.
    """
    logging.basicConfig(
        level=app.state.config.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    capabilities = get_answer_service().capabilities()
    logging.getLogger("scholargy.startup").info("capabilities: %s", capabilities)

    yield

    await close_clients()


def _error_response(status_code: int, code: str, exc: Exception) -> JSONResponse:
    details = None
    source_name = getattr(exc, "source_name", None)
    if source_name:
        details = {"source": source_name}
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=code,
            message=str(exc),
            details=details,
        ).model_dump(exclude_none=True),
    )


def register_error_handlers(app: FastAPI) -> None:
    logger = logging.getLogger("scholargy.api")

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error_response(400, "VALIDATION_ERROR", exc)

    @app.exception_handler(SourceUnavailable)
    async def source_unavailable_handler(request: Request, exc: SourceUnavailable):
        logger.error("query failed before streaming: %s", exc)
        return _error_response(503, "SOURCE_UNAVAILABLE", exc)

    @app.exception_handler(ContextOverflow)
    async def context_overflow_handler(request: Request, exc: ContextOverflow):
        return _error_response(413, "CONTEXT_OVERFLOW", exc)

    @app.exception_handler(ScholargyError)
    async def scholargy_error_handler(request: Request, exc: ScholargyError):
        logger.error("query failed: %s", exc)
        return _error_response(500, "RAG_ERROR", exc)


def create_app(config: AppConfig) -> FastAPI:
    app = FastAPI(
        title=config.app_name,
        lifespan=lifespan,
    )
    app.state.config = config

    register_error_handlers(app)

    app.include_router(
        query_router,
        prefix=f"{config.api_prefix}/rag",
        tags=["rag"],
    )

    return app


config = AppConfig()
app = create_app(config)
