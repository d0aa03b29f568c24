# hello_mesos/config.py
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

DEVELOPMENT = "development"


class ConfigError(Exception):
    """Required task configuration is missing or unusable."""

    exit_code = 3


@dataclass(frozen=True)
class DiscoveryConfig:
    # Fixed per deployment; not read from the environment
    host: str = "discovery-pp-sf.otenv.com"
    home_region_name: str = "pp-sf"
    service_type: str = "hello-mesos-ssalisbury"
    timeout_seconds: float = 5.0


@dataclass(frozen=True)
class Settings:
    task_host: str
    port: str
    env: str = DEVELOPMENT
    log_level: str = "INFO"
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)

    @property
    def is_development(self) -> bool:
        return self.env == DEVELOPMENT


def _require(environ: Mapping[str, str], name: str) -> str:
    value = environ.get(name, "")
    if not value:
        raise ConfigError(f"{name} not set")
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from the scheduler-provided environment.

    - TASK_HOST and PORT0 are mandatory (checked in that order).
    - OT_ENV defaults to "development" and only gates discovery announcement.
    """
    environ = os.environ if environ is None else environ

    task_host = _require(environ, "TASK_HOST")
    port = _require(environ, "PORT0")
    if not (port.isascii() and port.isdigit()) or not 0 < int(port) < 65536:
        raise ConfigError(f"PORT0 is not a valid port: {port!r}")

    return Settings(
        task_host=task_host,
        port=port,
        env=environ.get("OT_ENV") or DEVELOPMENT,
        log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
    )
