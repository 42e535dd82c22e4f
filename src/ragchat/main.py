import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from ragchat.api import router as rag_router
from ragchat.config import get_settings
from ragchat.errors import ConfigurationError, RagChatError, VectorStoreError
from ragchat.logging_config import configure_logging
from ragchat.telemetry import emit_app_startup_event, emit_exception
from ragchat.vectorstore import get_vector_store

configure_logging()

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Document RAG Chat API")
app.include_router(rag_router)


@app.on_event("startup")
async def _log_startup() -> None:
    emit_app_startup_event(get_settings().public_summary())


@app.exception_handler(RagChatError)
async def _handle_rag_chat_error(request: Request, exc: RagChatError) -> JSONResponse:
    payload = exc.to_payload()
    if exc.http_status >= 500:
        emit_exception(module=f"{__name__}.{request.url.path}", error=exc)
        cause_text = str(exc.__cause__) if exc.__cause__ is not None else ""
        if cause_text:
            payload["detail"] = cause_text[:1000]
    else:
        LOGGER.warning("Rejected %s request: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=payload)


@app.exception_handler(RequestValidationError)
async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in exc.errors()
    ]
    LOGGER.warning("Invalid %s request: %s", request.url.path, problems)
    return JSONResponse(status_code=400, content={"error": "Invalid request body", "detail": problems})


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Liveness probe used by container orchestrators."""
    return "ok"


@app.get("/readyz", response_class=PlainTextResponse)
def readiness_probe() -> str:
    """Readiness probe that ensures credentials and the vector store are available."""

    settings = get_settings()
    errors: list[str] = []

    try:
        settings.require_llm_credentials()
    except ConfigurationError as exc:
        errors.append(f"llm_unconfigured: {exc.message}")

    try:
        get_vector_store(settings).describe()
    except ConfigurationError as exc:
        errors.append(f"vector_store_unconfigured: {exc.message}")
    except VectorStoreError as exc:
        errors.append(f"vector_store_unavailable: {exc.message}")

    if errors:
        raise HTTPException(status_code=503, detail="; ".join(errors))

    return "ok"
