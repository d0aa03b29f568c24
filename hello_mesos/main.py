from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Mapping

from fastapi import FastAPI

from hello_mesos.config import ConfigError, load_settings
from hello_mesos.observability import LOGGER_NAME, RequestIdMiddleware, setup_logging
from hello_mesos.routes import router
from hello_mesos.service import HelloService

APP_NAME = "hello-mesos"
APP_VERSION = "0.1.0"

log = logging.getLogger(LOGGER_NAME)


def create_app() -> FastAPI:
    # No docs/openapi routes: the task serves exactly / and /health.
    app = FastAPI(
        title=APP_NAME,
        version=APP_VERSION,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(router)
    app.add_middleware(RequestIdMiddleware, logger=log)
    return app


def main(environ: Mapping[str, str] | None = None) -> int:
    setup_logging()
    try:
        settings = load_settings(environ)
    except ConfigError as e:
        log.error("%s", e)
        sys.exit(e.exit_code)

    setup_logging(settings.log_level)
    service = HelloService(settings, create_app())
    asyncio.run(service.serve())
    return 0


if __name__ == "__main__":
    sys.exit(main())
