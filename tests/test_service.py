import asyncio
import logging
import signal
import socket

import pytest

from hello_mesos.config import load_settings
from hello_mesos.main import create_app
from hello_mesos.models import AnnounceResult, ServiceState
from hello_mesos.service import HelloService, TaskServer


class FakeDiscovery:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.registered = []
        self.announced = 0
        self.closed = False

    def register(self, endpoint, env=None):
        self.registered.append((endpoint, env))

    async def announce(self):
        self.announced += 1
        uri = self.registered[-1][0].service_uri
        if self.ok:
            return AnnounceResult(ok=True, announcement_id=uri, status_code=200)
        return AnnounceResult(ok=False, error="boom")

    async def aclose(self):
        self.closed = True


@pytest.fixture
def logs(caplog):
    logger = logging.getLogger("hello_mesos")
    logger.setLevel(logging.INFO)
    logger.addHandler(caplog.handler)
    yield caplog
    logger.removeHandler(caplog.handler)


def _service(env=None, ok=True, exits=None):
    environ = {"TASK_HOST": "10.0.0.5", "PORT0": "31000"}
    if env is not None:
        environ["OT_ENV"] = env
    discovery = FakeDiscovery(ok=ok)
    svc = HelloService(
        load_settings(environ),
        create_app(),
        discovery=discovery,
        exit_fn=(exits.append if exits is not None else lambda code: None),
    )
    return svc, discovery


def test_registers_at_construction():
    svc, discovery = _service()
    assert len(discovery.registered) == 1
    assert svc.state == ServiceState.NOT_STARTED
    assert svc.app.state.service is svc


@pytest.mark.parametrize("env", [None, "development"])
def test_development_does_not_announce(env, logs):
    svc, discovery = _service(env=env)
    result = asyncio.run(svc.on_listening())

    assert result is None
    assert discovery.announced == 0
    assert svc.state == ServiceState.LISTENING
    assert "Server running at: http://10.0.0.5:31000" in logs.text
    assert "Not announcing" in logs.text


def test_production_announces_once(logs):
    svc, discovery = _service(env="production")
    result = asyncio.run(svc.on_listening())

    assert discovery.announced == 1
    endpoint, env = discovery.registered[0]
    assert endpoint.service_uri == "http://10.0.0.5:31000"
    assert env == "production"
    assert result.ok
    assert svc.state == ServiceState.ANNOUNCED
    assert (
        "ANNOUNCED hello-mesos-ssalisbury@http://10.0.0.5:31000 to discovery-pp-sf.otenv.com"
        in logs.text
    )


def test_failed_announce_keeps_listening():
    svc, discovery = _service(env="staging", ok=False)
    result = asyncio.run(svc.on_listening())

    assert discovery.announced == 1
    assert not result.ok
    assert svc.state == ServiceState.LISTENING


@pytest.mark.parametrize("sig", [signal.SIGINT, signal.SIGTERM])
def test_signal_exits_zero(sig, logs):
    exits = []
    svc, _ = _service(exits=exits)
    svc.handle_signal(sig)

    assert exits == [0]
    assert svc.state == ServiceState.TERMINATED
    assert f"Caught {sig.name}" in logs.text


def test_server_delegates_exit_to_service():
    exits = []
    svc, _ = _service(exits=exits)
    server = svc.build_server()

    assert isinstance(server, TaskServer)
    assert server.config.host == "10.0.0.5"
    assert server.config.port == 31000
    server.handle_exit(signal.SIGTERM, None)
    assert exits == [0]


def test_busy_port_fails_without_config_exit_code():
    held = socket.create_server(("127.0.0.1", 0))
    port = held.getsockname()[1]
    discovery = FakeDiscovery()
    svc = HelloService(
        load_settings({"TASK_HOST": "127.0.0.1", "PORT0": str(port), "OT_ENV": "production"}),
        create_app(),
        discovery=discovery,
    )
    try:
        with pytest.raises(OSError):
            asyncio.run(svc.serve())
    finally:
        held.close()

    assert discovery.announced == 0
    assert discovery.closed
    assert svc.state == ServiceState.NOT_STARTED
