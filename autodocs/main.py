import logging

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from autodocs.api.routes import router
from autodocs.core.config import settings
from autodocs.core.exceptions import AssemblyError
from autodocs.core.exceptions import AutoDocsError
from autodocs.core.exceptions import ConfigurationError
from autodocs.core.exceptions import SessionConflictError
from autodocs.core.exceptions import SessionNotFoundError
from autodocs.core.exceptions import ValidationError
from autodocs.core.logging import setup_logging

setup_logging()

app = FastAPI(title="AutoDocs")

logger = logging.getLogger(__name__)


@app.on_event("startup")
async def startup_event() -> None:
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; generation requests will fail until it is configured.")
    logger.info("Application startup - model %s, per-document timeout %.0fs", settings.model_id, settings.generation_timeout)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.error(f"HTTP exception: {exc.detail} (status: {exc.status_code})")
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    # Log the detailed Pydantic validation errors to the server console
    logger.error("Request validation failed: %s", exc.errors(), exc_info=False)
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        {"error": "Input validation failed", "message": message, "details": jsonable_encoder(errors)},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@app.exception_handler(ValidationError)
async def domain_validation_exception_handler(_request: Request, exc: ValidationError) -> JSONResponse:
    logger.error(f"Validation error: {str(exc)}")
    return JSONResponse({"error": "Input validation failed", "message": str(exc)}, status_code=400)


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(_request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(f"Configuration error: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=500)


@app.exception_handler(SessionConflictError)
async def session_conflict_exception_handler(_request: Request, exc: SessionConflictError) -> JSONResponse:
    logger.warning(f"Session conflict: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=409)


@app.exception_handler(SessionNotFoundError)
async def session_not_found_exception_handler(_request: Request, exc: SessionNotFoundError) -> JSONResponse:
    logger.warning(f"Session not found: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=404)


@app.exception_handler(AssemblyError)
async def assembly_exception_handler(_request: Request, exc: AssemblyError) -> JSONResponse:
    logger.error(f"Bundle assembly error: {str(exc)}")
    return JSONResponse({"error": "Knowledge Base not available", "message": str(exc)}, status_code=409)


@app.exception_handler(AutoDocsError)
async def autodocs_exception_handler(_request: Request, exc: AutoDocsError) -> JSONResponse:
    logger.error(f"Unhandled application error: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=500)


@app.get("/health", status_code=status.HTTP_200_OK, tags=["Health"])
async def health_check() -> dict[str, str]:
    logger.info("Health check endpoint called")
    return {"status": "ok"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)
app.include_router(router)
