# hello_mesos/service.py
# Owns the task's lifecycle: bind, announce, die on signal.
# NOT_STARTED -> LISTENING -> (ANNOUNCED) -> TERMINATED

from __future__ import annotations

import asyncio
import logging
import os
import signal
import socket
from collections.abc import Callable

import uvicorn
from fastapi import FastAPI

from hello_mesos.config import Settings
from hello_mesos.discovery import DiscoveryClient
from hello_mesos.models import AnnounceResult, ServiceEndpoint, ServiceState

log = logging.getLogger("hello_mesos")

STARTUP_POLL_SECONDS = 0.05


class TaskServer(uvicorn.Server):
    """uvicorn server whose SIGINT/SIGTERM handling is delegated to the service."""

    def __init__(self, config: uvicorn.Config, on_signal: Callable[[int], None]):
        super().__init__(config)
        self._on_signal = on_signal

    def handle_exit(self, sig: int, frame) -> None:
        self._on_signal(sig)


class HelloService:
    def __init__(
        self,
        settings: Settings,
        app: FastAPI,
        discovery: DiscoveryClient | None = None,
        exit_fn: Callable[[int], None] = os._exit,
    ):
        self.settings = settings
        self.endpoint = ServiceEndpoint.from_settings(settings)
        self.app = app
        self.app.state.service = self
        self.discovery = discovery or DiscoveryClient(settings.discovery)
        self.discovery.register(self.endpoint, settings.env)
        self.state = ServiceState.NOT_STARTED
        self._exit = exit_fn

    async def on_listening(self) -> AnnounceResult | None:
        """Runs once the listener is bound. Returns None when announcing is skipped."""
        self.state = ServiceState.LISTENING
        log.info("Server running at: %s", self.endpoint.service_uri)

        if self.settings.is_development:
            log.info("Not announcing, as running in development mode.")
            return None

        result = await self.discovery.announce()
        if result.ok:
            self.state = ServiceState.ANNOUNCED
            log.info(
                "ANNOUNCED %s@%s to %s",
                self.endpoint.service_type,
                self.endpoint.service_uri,
                self.settings.discovery.host,
            )
        return result

    def handle_signal(self, signum: int) -> None:
        # Immediate exit: in-flight requests are abandoned, nothing is drained.
        log.info("Caught %s", signal.Signals(signum).name)
        self.state = ServiceState.TERMINATED
        self._exit(0)

    def build_server(self) -> TaskServer:
        config = uvicorn.Config(
            self.app,
            host=self.settings.task_host,
            port=int(self.settings.port),
            log_level=self.settings.log_level.lower(),
            access_log=False,
        )
        return TaskServer(config, self.handle_signal)

    def bind_socket(self) -> socket.socket:
        # A busy port raises OSError here, before uvicorn can exit with its own code.
        return socket.create_server((self.settings.task_host, int(self.settings.port)))

    async def serve(self) -> None:
        try:
            sock = self.bind_socket()
            server = self.build_server()
            task = asyncio.create_task(server.serve(sockets=[sock]))
            while not server.started:
                if task.done():
                    await task
                    return
                await asyncio.sleep(STARTUP_POLL_SECONDS)

            await self.on_listening()
            await task
        finally:
            await self.discovery.aclose()
