import sys
from collections.abc import Sequence
from typing import TextIO


class ConsoleHooks:
    def __init__(self, usage: str, out: TextIO | None = None, err: TextIO | None = None) -> None:
        self._usage = usage
        self._out = out
        self._err = err

    def on_not_running(self) -> None:
        self.print_error("The service is not running")

    def on_already_running(self, port: int) -> None:
        self.print_error(f"The service is already running, or another process is using the port {port}.")

    def on_command_not_handled(self, command: str | None, args: Sequence[str]) -> None:
        self.print_message(self._usage)

    def on_spawn_failed(self, error: Exception) -> None:
        self.print_error(f"ERROR: It seems that the service failed to start: {error}")

    def print_message(self, message: str) -> None:
        print(message, file=self._out or sys.stdout)

    def print_error(self, message: str) -> None:
        print(message, file=self._err or sys.stderr)
