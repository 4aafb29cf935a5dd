import asyncio
import logging
import socket
import threading
from contextlib import suppress

from svcctl.config import ServiceControlConfig
from svcctl.domain.errors import BindError, ConnectionClosed, MalformedFrameError, ServiceNotRunningError
from svcctl.domain.frame import (
    CommandFrame,
    ServiceEndpoint,
    encode_command,
    encode_response,
    read_command,
    read_response_async,
)
from svcctl.domain.locks import RunLocks
from svcctl.domain.state import ServiceState, ServiceStateTracker
from svcctl.ports.service import Service

logger = logging.getLogger(__name__)


def bind_control_socket(endpoint: ServiceEndpoint) -> socket.socket:
    family = socket.AF_INET6 if ":" in endpoint.host else socket.AF_INET
    try:
        server = socket.create_server((endpoint.host, endpoint.port), family=family)
    except OSError as exc:
        raise BindError(endpoint.host, endpoint.port, exc) from exc
    logger.info("Control socket listening at %s", endpoint)
    return server


def _status_lines(text: str) -> list[str]:
    lines = text.splitlines()
    kept = [line for line in lines if line]
    if len(kept) != len(lines):
        logger.warning("Dropped %d blank status line(s); blank lines end a frame", len(lines) - len(kept))
    return kept


class ControlListener(threading.Thread):
    """Serves control exchanges for one run invocation, one connection at a time."""

    def __init__(
        self,
        server: socket.socket,
        service: Service,
        config: ServiceControlConfig,
        locks: RunLocks,
        state: ServiceStateTracker,
    ) -> None:
        super().__init__(name="ServiceCommandListener", daemon=True)
        self._server = server
        self._service = service
        self._config = config
        self._locks = locks
        self._state = state
        self._listening = threading.Event()
        self._listening.set()

    @property
    def keep_listening(self) -> bool:
        return self._listening.is_set()

    def stop_listening(self) -> None:
        self._listening.clear()

    def run(self) -> None:
        self._server.settimeout(self._config.accept_poll_interval)
        try:
            while self.keep_listening:
                try:
                    connection, peer = self._server.accept()
                except TimeoutError:
                    continue
                except OSError:
                    logger.debug("Control socket closed, listener exiting")
                    break
                logger.debug("Control connection from %s:%d", *peer[:2])
                with self._locks.shutdown:
                    self._handle_connection(connection)
        finally:
            self._close_server()
            logger.info("Control listener stopped")

    def _close_server(self) -> None:
        with suppress(OSError):
            self._server.close()

    def _handle_connection(self, connection: socket.socket) -> None:
        with connection:
            connection.settimeout(self._config.listen_read_timeout)
            try:
                with connection.makefile("rb") as stream:
                    frame = read_command(stream)
                self._dispatch(frame, connection)
            except ConnectionClosed:
                if self.keep_listening:
                    logger.warning("Control client closed the connection without a command")
                else:
                    logger.debug("Connection closed during shutdown")
            except MalformedFrameError as exc:
                logger.warning("Malformed command frame: %s", exc)
            except TimeoutError:
                logger.warning("Control client connection timed out")
            except Exception:
                logger.exception("Error handling control client")

    def _dispatch(self, frame: CommandFrame, connection: socket.socket) -> None:
        command = frame.command
        if command in (self._config.stop_command, self._config.restart_command):
            logger.info("Stop requested by control client (%s)", command)
            self._state.transition_if(ServiceState.RUNNING, ServiceState.STOPPING)
            self._service.stop(frame.args)
            self.stop_listening()
            with self._locks.execution:
                connection.sendall(encode_response([]))
        elif command == self._config.status_command:
            connection.sendall(encode_response(_status_lines(self._service.status(frame.args))))
        else:
            connection.sendall(encode_response([command]))


class ControlClient:
    def __init__(
        self,
        endpoint: ServiceEndpoint,
        connect_timeout: float = 5.0,
        read_timeout: float | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout

    async def send_command(self, frame: CommandFrame) -> tuple[str, ...]:
        payload = encode_command(frame)
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self._endpoint.host, self._endpoint.port),
                timeout=self._connect_timeout,
            )
        except socket.gaierror:
            raise
        except OSError as exc:
            # asyncio raises a plain OSError when every resolved address refuses.
            raise ServiceNotRunningError(self._endpoint.host, self._endpoint.port, exc) from exc
        try:
            writer.write(payload)
            await writer.drain()
            return await read_response_async(reader, timeout=self._read_timeout)
        finally:
            writer.close()
            with suppress(ConnectionError):
                await writer.wait_closed()

    def send(self, command: str, args: tuple[str, ...] | list[str] = ()) -> tuple[str, ...]:
        return asyncio.run(self.send_command(CommandFrame(command=command, args=tuple(args))))
