# hello_mesos/routes.py
"""
The task's whole HTTP surface: two static plain-text GET routes.

- /        : greeting
- /health  : scheduler health check; 200 once the process is serving

Anything else falls through to the framework defaults (404 / 405).
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

HELLO_BODY = "Hello, HAPI.\n"
HEALTH_BODY = "I've started up successfully!\n"

router = APIRouter(default_response_class=PlainTextResponse)


@router.get("/")
def hello() -> str:
    return HELLO_BODY


@router.get("/health")
def health() -> str:
    return HEALTH_BODY
