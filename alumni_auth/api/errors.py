"""Last-resort error handling for the HTTP layer."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..config import Settings

logger = logging.getLogger(__name__)


def install_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Answer unexpected failures with a generic 500; details only in debug mode."""

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        body: dict[str, str] = {"detail": "Server error"}
        if settings.debug:
            body["error"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(status_code=500, content=body)
