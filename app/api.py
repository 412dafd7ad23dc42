"""
FastAPI routes for transaction and statement categorization.
Thin HTTP layer: request validation, error mapping, CORS.
"""
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import get_settings
from core.exceptions import ProviderError, ValidationError
from core.logger import setup_logger
from core.schema import CategorizationResult, CategorizePdfRequest, CategorizeRequest
from services.categorization_service import CategorizationService

logger = setup_logger(__name__)
settings = get_settings()

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Categorize bank transactions and statements and generate spending insights",
    version="1.0.0"
)


def error_body(error: str, message: str) -> Dict[str, str]:
    return {"error": error, "message": message}


def format_validation_errors(errors: List[Dict[str, Any]]) -> str:
    """
    Render pydantic errors as "field.path: reason" pairs.

    Args:
        errors: Errors from RequestValidationError.errors()

    Returns:
        Human readable message naming each invalid field
    """
    parts = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        msg = str(error.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request body"


def payload_too_large_message() -> str:
    return f"Request body exceeds {settings.max_body_bytes} bytes"


class BodySizeLimitMiddleware:
    """
    Reject bodies above MAX_BODY_BYTES.

    Content-Length is checked before the route runs; bodies without it
    (chunked uploads) are counted as they are read.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = settings.max_body_bytes
        content_length = dict(scope["headers"]).get(b"content-length", b"")
        if content_length.isdigit() and int(content_length) > limit:
            logger.warning(f"Rejected request body of {content_length.decode()} bytes")
            response = JSONResponse(
                status_code=413,
                content=error_body("Payload too large", payload_too_large_message())
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    logger.warning(f"Rejected streamed request body above {limit} bytes")
                    raise HTTPException(status_code=413, detail=payload_too_large_message())
            return message

        await self.app(scope, limited_receive, send)


app.add_middleware(BodySizeLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    allow_credentials=True,
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    message = format_validation_errors(exc.errors())
    logger.info(f"Invalid request to {request.url.path}: {message}")
    return JSONResponse(status_code=400, content=error_body("Invalid request", message))


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info(f"Invalid request to {request.url.path}: {exc.message}")
    return JSONResponse(status_code=400, content=error_body("Invalid request", exc.message))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content=error_body("Not found", "The requested endpoint does not exist")
        )
    if exc.status_code == 413:
        return JSONResponse(status_code=413, content=error_body("Payload too large", str(exc.detail)))
    return JSONResponse(status_code=exc.status_code, content=error_body("Request failed", str(exc.detail)))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Server error on {request.url.path}: {exc}", exc_info=True)
    message = str(exc) if settings.is_development else "An error occurred"
    return JSONResponse(status_code=500, content=error_body("Internal server error", message))


def get_categorization_service() -> CategorizationService:
    """Service dependency; overridden in tests to inject a fake provider."""
    return CategorizationService()


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.post(
    "/api/categorize",
    response_model=CategorizationResult,
    response_model_exclude_none=True,
)
async def categorize(
    body: CategorizeRequest,
    service: CategorizationService = Depends(get_categorization_service),
):
    """
    Categorize bank transactions and generate spending insights.

    Args:
        body: {"transactions": [{"description", "amount", "date"?}, ...]}
        service: Categorization service

    Returns:
        CategorizationResult, or 500 when the model provider call fails
    """
    if len(body.transactions) > settings.max_transactions:
        raise ValidationError(
            f"Maximum {settings.max_transactions} transactions allowed per request",
            details={"count": len(body.transactions)}
        )

    try:
        return await service.categorize_transactions(body.transactions)
    except ProviderError as e:
        logger.error(f"Categorization error: {e.message}")
        return JSONResponse(status_code=500, content=error_body("Categorization failed", e.message))


@app.post(
    "/api/categorize-pdf",
    response_model=CategorizationResult,
    response_model_exclude_none=True,
)
async def categorize_pdf(
    body: CategorizePdfRequest,
    service: CategorizationService = Depends(get_categorization_service),
):
    """
    Extract and categorize transactions from a base64 PDF bank statement.

    Args:
        body: {"pdf": "<base64>"}
        service: Categorization service

    Returns:
        CategorizationResult, or 500 when the model provider call fails
    """
    try:
        return await service.categorize_statement(body.pdf)
    except ProviderError as e:
        logger.error(f"PDF categorization error: {e.message}")
        return JSONResponse(status_code=500, content=error_body("PDF categorization failed", e.message))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
