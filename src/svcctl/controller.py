import logging
import socket
import time
from collections.abc import Callable, Sequence
from contextlib import suppress

from svcctl.adapters.process_launcher import ProcessLauncher
from svcctl.adapters.tcp_control import ControlClient, ControlListener, bind_control_socket
from svcctl.config import ServiceControlConfig
from svcctl.domain.errors import (
    BindError,
    ConnectionClosed,
    MalformedFrameError,
    ServiceNotRunningError,
    SpawnError,
)
from svcctl.domain.frame import ServiceEndpoint
from svcctl.domain.locks import RunLocks
from svcctl.domain.state import ServiceState, ServiceStateTracker
from svcctl.health import has_critical_failures, run_startup_checks
from svcctl.ports.service import Service, ServiceHooks

logger = logging.getLogger(__name__)


class ServiceController:
    """Routes a command line verb to the start, run, stop, restart or status sequence.

    ``run`` hosts the service in the current process: it binds the control
    socket, starts a :class:`ControlListener` thread and calls the service's
    ``start`` in the calling thread. Every other verb is a short-lived client
    of that control socket. Each sequence returns a process exit code.
    """

    def __init__(
        self,
        service: Service,
        config: ServiceControlConfig,
        hooks: ServiceHooks,
        launcher: ProcessLauncher,
    ) -> None:
        self._service = service
        self._config = config
        self._hooks = hooks
        self._launcher = launcher
        self._state = ServiceStateTracker()

    @property
    def config(self) -> ServiceControlConfig:
        return self._config

    @property
    def endpoint(self) -> ServiceEndpoint:
        return ServiceEndpoint(host=self._config.host, port=self._config.port)

    @property
    def state(self) -> ServiceState:
        return self._state.state

    def execute(self, argv: Sequence[str]) -> int:
        if not argv:
            self._hooks.on_command_not_handled(None, ())
            return 1
        command, args = argv[0], tuple(argv[1:])
        handler = self._routes().get(command)
        if handler is None:
            self._hooks.on_command_not_handled(command, args)
            return 1
        return handler(args)

    def _routes(self) -> dict[str, Callable[[tuple[str, ...]], int]]:
        routes: dict[str, Callable[[tuple[str, ...]], int]] = {}
        routes.setdefault(self._config.start_command, self.start_service)
        routes.setdefault(self._config.run_command, self.run_service)
        routes.setdefault(self._config.stop_command, self.stop_service)
        routes.setdefault(self._config.restart_command, self.restart_service)
        routes.setdefault(self._config.status_command, self.show_status)
        return routes

    def start_service(self, args: Sequence[str] = ()) -> int:
        if not self._passes_startup_checks(include_launcher=True):
            return 1
        if self._config.check_running_before_start and self._is_answering():
            self._hooks.on_already_running(self._config.port)
            return 1

        try:
            self._launcher.spawn(self._config.run_command, args)
        except SpawnError as exc:
            logger.error("Spawn failed: %s", exc)
            self._hooks.on_spawn_failed(exc)
            raise

        time.sleep(self._config.settle_delay)
        return self._send(self._config.probe_message, args)

    def run_service(self, args: Sequence[str] = ()) -> int:
        if not self._passes_startup_checks():
            return 1

        self._state.transition(ServiceState.STARTING)
        try:
            server = bind_control_socket(self.endpoint)
        except BindError as exc:
            logger.warning("%s: %s", exc, exc.cause)
            self._state.transition(ServiceState.NOT_RUNNING)
            self._hooks.on_already_running(self._config.port)
            return 1

        locks = RunLocks()
        listener = ControlListener(server, self._service, self._config, locks, self._state)
        exit_code = 0
        try:
            with locks.execution:
                self._state.transition(ServiceState.RUNNING)
                listener.start()
                try:
                    self._service.start(tuple(args))
                except Exception:
                    logger.exception("Service start raised")
                    exit_code = 1
        finally:
            with locks.shutdown:
                listener.stop_listening()
                self._state.transition_if(ServiceState.RUNNING, ServiceState.STOPPING)
                with suppress(OSError):
                    server.close()
            if listener.is_alive():
                listener.join()
            self._state.transition(ServiceState.NOT_RUNNING)
        return exit_code

    def stop_service(self, args: Sequence[str] = ()) -> int:
        return self._send(self._config.stop_command, args)

    def restart_service(self, args: Sequence[str] = ()) -> int:
        self.stop_service(args)
        time.sleep(self._config.settle_delay)
        return self.start_service(args)

    def show_status(self, args: Sequence[str] = ()) -> int:
        return self._send(self._config.status_command, args)

    def _client(self) -> ControlClient:
        return ControlClient(
            self.endpoint,
            connect_timeout=self._config.connect_timeout,
            read_timeout=self._config.read_timeout,
        )

    def _send(self, command: str, args: Sequence[str]) -> int:
        try:
            lines = self._client().send(command, tuple(args))
        except ServiceNotRunningError as exc:
            logger.debug("%s", exc)
            self._hooks.on_not_running()
            return 1
        except ConnectionClosed:
            self._hooks.print_error("The service closed the connection without answering")
            return 1
        except MalformedFrameError as exc:
            self._hooks.print_error(str(exc))
            return 1
        except socket.gaierror:
            self._hooks.print_error(f"Don't know about host: {self._config.host}")
            return 1
        except TimeoutError:
            self._hooks.print_error(f"No answer from {self.endpoint} within {self._config.read_timeout}s")
            return 1

        for line in lines:
            self._hooks.print_message(line)
        return 0

    def _is_answering(self) -> bool:
        client = ControlClient(
            self.endpoint,
            connect_timeout=self._config.connect_timeout,
            read_timeout=self._config.connect_timeout,
        )
        try:
            client.send(self._config.probe_message)
        except ServiceNotRunningError:
            return False
        except (ConnectionClosed, TimeoutError):
            logger.debug("Something holds %s but did not answer the probe", self.endpoint)
        return True

    def _passes_startup_checks(self, include_launcher: bool = False) -> bool:
        executable = self._launcher.executable if include_launcher else None
        results = run_startup_checks(self._config, executable)
        if not has_critical_failures(results):
            return True
        for result in results:
            if not result.passed:
                self._hooks.print_error(f"{result.name}: {result.detail}")
        return False
