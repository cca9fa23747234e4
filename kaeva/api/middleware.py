"""API middleware and exception handlers.

This module provides:
- Request id propagation into log records
- Request logging
- Translation of KaevaError into JSON error responses
"""

import logging
import time
import uuid
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from kaeva.utils.exceptions import KaevaError
from kaeva.utils.logging import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id to the logging context and echoes it back."""

    def __init__(self, app: FastAPI):
        super().__init__(app)
        self.logger = logging.getLogger("kaeva.api.middleware")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        self.logger.info(
            "%s %s -> %s in %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            (time.time() - start_time) * 1000,
        )
        return response


async def kaeva_error_handler(request: Request, exc: KaevaError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logging.getLogger("kaeva.api").log(level, "%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def setup_middleware(app: FastAPI) -> None:
    """Register middleware and exception handlers on ``app``."""
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(KaevaError, kaeva_error_handler)
