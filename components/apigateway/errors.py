from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from components.mediastorage.contracts import ErrorPayload, MetaPayload, UWFResponse
from components.objectstore.errors import ErrorKind, StorageError

logger = logging.getLogger("apigateway")


def _meta(request: Request) -> MetaPayload:
    started = getattr(request.state, "started_at", None)
    return MetaPayload(
        trace_id=getattr(request.state, "trace_id", None),
        request_id=getattr(request.state, "request_id", None),
        duration_ms=int((time.perf_counter() - started) * 1000) if started is not None else None,
    )


def uwf_error(request: Request, status_code: int, payload: dict) -> JSONResponse:
    body = UWFResponse(ok=False, result=None, error=ErrorPayload(**payload), meta=_meta(request))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    if exc.kind is ErrorKind.SERVICE_ERROR:
        logger.error("request.failed path=%s error=%r", request.url.path, exc)
    else:
        logger.info("request.rejected path=%s kind=%s code=%s", request.url.path, exc.kind.value, exc.code)
    return uwf_error(request, exc.status_code, exc.to_payload())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return uwf_error(request, 400, {
        "type": ErrorKind.BAD_REQUEST.value,
        "code": "INVALID_INPUT",
        "message": "Invalid request",
        "details": {"errors": [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()
        ]},
    })


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled path=%s", request.url.path)
    return uwf_error(request, 500, {
        "type": ErrorKind.SERVICE_ERROR.value,
        "code": "SERVER_ERROR",
        "message": "Internal server error",
    })


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
