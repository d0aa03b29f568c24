from __future__ import annotations

import logging
import time
from collections.abc import Callable

import httpx

from hello_mesos.config import DiscoveryConfig
from hello_mesos.models import Announcement, AnnounceResult, ServiceEndpoint

log = logging.getLogger("hello_mesos.discovery")

ErrorCallback = Callable[[str], None]


def build_async_client(
    config: DiscoveryConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=f"http://{config.host}",
        timeout=httpx.Timeout(config.timeout_seconds),
        headers={"Accept": "application/json"},
        transport=transport,
    )


class DiscoveryClient:
    """
    Announces one service endpoint to the discovery service.

    register() only records what to announce; announce() does the single
    network call and reports the outcome as an AnnounceResult. Failures are
    handed to on_error and never raised: discovery is not allowed to take the
    HTTP server down.
    """

    def __init__(
        self,
        config: DiscoveryConfig,
        *,
        on_error: ErrorCallback | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._on_error = on_error or (lambda err: log.error("Discovery error: %s", err))
        self._client = build_async_client(config, transport=transport)
        self._announcement: Announcement | None = None

    @property
    def announcement(self) -> Announcement | None:
        return self._announcement

    def register(self, endpoint: ServiceEndpoint, env: str | None = None) -> Announcement:
        self._announcement = Announcement(
            service_type=endpoint.service_type,
            service_uri=endpoint.service_uri,
            home_region_name=self.config.home_region_name,
            environment=env,
        )
        log.debug(
            "registered %s@%s with %s",
            endpoint.service_type,
            endpoint.service_uri,
            self.config.host,
        )
        return self._announcement

    async def announce(self) -> AnnounceResult:
        if self._announcement is None:
            raise RuntimeError("announce() called before register()")

        start = time.time()
        announcement_id = self._announcement.announcement_id
        error: str | None = None
        status_code: int | None = None
        try:
            resp = await self._client.post("/announcement", json=self._announcement.to_wire())
            status_code = resp.status_code
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            error = f"announce rejected with HTTP {e.response.status_code}"
        except httpx.HTTPError as e:
            error = f"{type(e).__name__}: {e}"

        elapsed_ms = int((time.time() - start) * 1000)
        if error is not None:
            self._on_error(error)
            return AnnounceResult(
                ok=False,
                announcement_id=announcement_id,
                status_code=status_code,
                error=error,
                elapsed_ms=elapsed_ms,
            )
        return AnnounceResult(
            ok=True,
            announcement_id=announcement_id,
            status_code=status_code,
            elapsed_ms=elapsed_ms,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
