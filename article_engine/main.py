"""FastAPI application entry point."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from article_engine.api import router as api_router
from article_engine.core.logging import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Article Engine",
    description="Streaming AI article generation: research, outline, draft, edit and link",
    version="0.1.0",
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", []) if p != "body")
    message = first.get("msg", "Invalid request")
    logger.info(f"Rejected request to {request.url.path}: {message}", extra={"field": location})
    return JSONResponse(
        status_code=400,
        content={"detail": f"{location}: {message}" if location else message, "errors": jsonable_errors(errors)},
    )


def jsonable_errors(errors: list) -> list[dict]:
    return [{"loc": list(e.get("loc", [])), "msg": e.get("msg"), "type": e.get("type")} for e in errors]


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
