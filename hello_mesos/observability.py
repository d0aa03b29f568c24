from __future__ import annotations

import json
import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

LOGGER_NAME = "hello_mesos"


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line:

      {"ts":"...","level":"...","logger":"...","msg":"...","request_id":"..."}

    Structured data passed as extra={"fields": {...}} is merged in at the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }
        line.update(getattr(record, "fields", {}))
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def setup_logging(level: str = "INFO", logger_name: str = LOGGER_NAME) -> logging.Logger:
    """Attach a JSON-line stderr handler once; later calls only adjust the level."""
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def _service_uri(request: Request) -> str | None:
    service = getattr(request.app.state, "service", None)
    return service.endpoint.service_uri if service is not None else None


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Echo or assign X-Request-ID; log one "access" record per request."""

    def __init__(self, app, logger: logging.Logger):
        super().__init__(app)
        self.log = logger

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        fields = {
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else "-",
            "service_uri": _service_uri(request),
        }
        start = time.time()
        try:
            response = await call_next(request)
        except Exception:
            fields["duration_ms"] = int((time.time() - start) * 1000)
            self.log.exception("unhandled_exception", extra={"request_id": rid, "fields": fields})
            raise

        response.headers["X-Request-ID"] = rid
        fields["status"] = response.status_code
        fields["duration_ms"] = int((time.time() - start) * 1000)
        self.log.info("access", extra={"request_id": rid, "fields": fields})
        return response
