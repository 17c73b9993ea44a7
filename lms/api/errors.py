from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lms.services.errors import LmsError

logger = logging.getLogger(__name__)


async def lms_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, LmsError)
    logger.warning(
        "%s %s -> %d %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        type(exc).__name__,
        exc.detail,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code, content={"detail": exc.detail}, headers=headers
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LmsError, lms_error_handler)
