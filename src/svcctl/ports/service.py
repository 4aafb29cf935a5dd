from typing import Protocol, Sequence


class Service(Protocol):
    def start(self, args: Sequence[str]) -> None:
        """Run the workload. Return only once it is done or has been asked to stop."""
        ...

    def stop(self, args: Sequence[str]) -> None:
        """Ask a concurrently running ``start`` to return soon. Must not block."""
        ...

    def status(self, args: Sequence[str]) -> str: ...


class ServiceHooks(Protocol):
    def on_not_running(self) -> None: ...
    def on_already_running(self, port: int) -> None: ...
    def on_command_not_handled(self, command: str | None, args: Sequence[str]) -> None: ...
    def on_spawn_failed(self, error: Exception) -> None: ...
    def print_message(self, message: str) -> None: ...
    def print_error(self, message: str) -> None: ...
