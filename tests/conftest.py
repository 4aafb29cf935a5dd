import socket
import sys
import threading
import time
from collections.abc import Callable, Sequence

import pytest

from svcctl.adapters.process_launcher import ExecutableSpec, ProcessLauncher
from svcctl.config import ServiceControlConfig
from svcctl.controller import ServiceController

DEFAULT_STATUS = "STATUS: the service is running"


def find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def make_config(port: int, **overrides) -> ServiceControlConfig:
    values = {
        "host": "127.0.0.1",
        "port": port,
        "settle_delay_ms": 200,
        "connect_timeout": 1.0,
        "listen_read_timeout": 1.0,
        "accept_poll_interval": 0.05,
    }
    values.update(overrides)
    return ServiceControlConfig(**values)


def wait_until_listening(port: int, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            with socket.create_connection(("127.0.0.1", port), timeout=0.2):
                return
        except OSError:
            time.sleep(0.02)
    raise AssertionError(f"Nothing listening on port {port} after {timeout}s")


def is_listening(port: int) -> bool:
    try:
        with socket.create_connection(("127.0.0.1", port), timeout=0.2):
            return True
    except OSError:
        return False


class FakeService:
    def __init__(
        self,
        name: str = "service",
        status_text: str = DEFAULT_STATUS,
        linger_seconds: float = 0.0,
        events: list[str] | None = None,
    ) -> None:
        self.name = name
        self.status_text = status_text
        self.linger_seconds = linger_seconds
        self.events = events if events is not None else []
        self.start_args: tuple[str, ...] | None = None
        self.stop_calls: list[tuple[str, ...]] = []
        self.started = threading.Event()
        self.finished = threading.Event()
        self._stop_requested = threading.Event()

    def start(self, args: Sequence[str]) -> None:
        self.start_args = tuple(args)
        self.events.append(f"{self.name}.start")
        self.started.set()
        self._stop_requested.wait()
        if self.linger_seconds:
            time.sleep(self.linger_seconds)
        self.events.append(f"{self.name}.start_returned")
        self.finished.set()

    def stop(self, args: Sequence[str]) -> None:
        self.stop_calls.append(tuple(args))
        self.events.append(f"{self.name}.stop")
        self._stop_requested.set()

    def status(self, args: Sequence[str]) -> str:
        return self.status_text

    def finish(self) -> None:
        self._stop_requested.set()


class RecordingHooks:
    def __init__(self) -> None:
        self.messages: list[str] = []
        self.errors: list[str] = []
        self.not_running = 0
        self.already_running: list[int] = []
        self.not_handled: list[tuple[str | None, tuple[str, ...]]] = []
        self.spawn_failures: list[Exception] = []

    def on_not_running(self) -> None:
        self.not_running += 1

    def on_already_running(self, port: int) -> None:
        self.already_running.append(port)

    def on_command_not_handled(self, command: str | None, args: Sequence[str]) -> None:
        self.not_handled.append((command, tuple(args)))

    def on_spawn_failed(self, error: Exception) -> None:
        self.spawn_failures.append(error)

    def print_message(self, message: str) -> None:
        self.messages.append(message)

    def print_error(self, message: str) -> None:
        self.errors.append(message)


def make_controller(service, config: ServiceControlConfig, hooks=None, launcher=None) -> ServiceController:
    return ServiceController(
        service,
        config,
        hooks or RecordingHooks(),
        launcher or ProcessLauncher(ExecutableSpec(argv=(sys.executable,))),
    )


class InProcessLauncher:
    """Stands in for a detached process: hosts the spawned run verb on a thread."""

    def __init__(self, config: ServiceControlConfig, service_factory: Callable[[], FakeService]) -> None:
        self._config = config
        self._service_factory = service_factory
        self.spawns: list[tuple[str, tuple[str, ...]]] = []
        self.services: list[FakeService] = []
        self.controllers: list[ServiceController] = []
        self.threads: list[threading.Thread] = []

    @property
    def executable(self) -> ExecutableSpec:
        return ExecutableSpec(argv=(sys.executable,))

    def spawn(self, run_verb: str, args: Sequence[str]) -> None:
        self.spawns.append((run_verb, tuple(args)))
        service = self._service_factory()
        controller = ServiceController(service, self._config, RecordingHooks(), self)
        thread = threading.Thread(target=controller.execute, args=([run_verb, *args],), daemon=True)
        self.services.append(service)
        self.controllers.append(controller)
        self.threads.append(thread)
        thread.start()


class RunningInstance:
    def __init__(self, controller: ServiceController, service: FakeService, args: Sequence[str] = ()) -> None:
        self.controller = controller
        self.service = service
        self.exit_code: int | None = None
        self._thread = threading.Thread(target=self._run, args=(tuple(args),), daemon=True)

    def _run(self, args: tuple[str, ...]) -> None:
        self.exit_code = self.controller.run_service(args)

    def start(self) -> "RunningInstance":
        self._thread.start()
        wait_until_listening(self.controller.config.port)
        assert self.service.started.wait(5.0), "service start was never called"
        return self

    def join(self, timeout: float = 5.0) -> None:
        self._thread.join(timeout)
        assert not self._thread.is_alive(), "run invocation did not return"

    def shutdown(self) -> None:
        self.service.finish()
        self.join()


@pytest.fixture
def free_port() -> int:
    return find_free_port()


@pytest.fixture
def config(free_port) -> ServiceControlConfig:
    return make_config(free_port)


@pytest.fixture
def fake_service() -> FakeService:
    return FakeService()


@pytest.fixture
def hooks() -> RecordingHooks:
    return RecordingHooks()


@pytest.fixture
def running(config, fake_service):
    instance = RunningInstance(make_controller(fake_service, config), fake_service)
    instance.start()
    yield instance
    instance.shutdown()


@pytest.fixture
def dual_stack_localhost(monkeypatch):
    """Resolves ``localhost`` to ``::1`` then ``127.0.0.1``, like a dual-stack host."""
    real_getaddrinfo = socket.getaddrinfo

    def getaddrinfo(host, port, *args, **kwargs):
        if host != "localhost":
            return real_getaddrinfo(host, port, *args, **kwargs)
        return [
            (socket.AF_INET6, socket.SOCK_STREAM, socket.IPPROTO_TCP, "", ("::1", port, 0, 0)),
            (socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, "", ("127.0.0.1", port)),
        ]

    monkeypatch.setattr(socket, "getaddrinfo", getaddrinfo)
    return "localhost"
