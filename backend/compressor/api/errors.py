"""Translate CompressorError into HTTP responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from compressor.exceptions import ArtifactNotFoundError, CompressorError, ConversionFailedError

logger = logging.getLogger("compressor.api")

# Messages shown for failed conversions, keyed by media kind
FAILURE_MESSAGES = {
    "pdf": "Failed to compress PDF",
    "image": "Failed to compress image",
    "video": "Failed to compress video",
}


def error_body(exc: CompressorError) -> dict:
    if isinstance(exc, ConversionFailedError):
        return {
            "success": False,
            "error": FAILURE_MESSAGES.get(exc.kind or "", exc.message),
            "code": exc.route_code,
            "reason": exc.error_code,
            "detail": exc.detail,
        }
    return {"success": False, "error": exc.message, "code": exc.error_code}


async def compressor_error_handler(request: Request, exc: CompressorError):
    if isinstance(exc, ArtifactNotFoundError):
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method, request.url.path, exc.message,
            exc_info=exc.original_error or exc,
        )
    else:
        logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.error_code)
    return JSONResponse(error_body(exc), status_code=exc.status_code)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CompressorError, compressor_error_handler)
