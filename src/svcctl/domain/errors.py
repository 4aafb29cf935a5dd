class ControlError(Exception):
    pass


class BindError(ControlError):
    """The control port is already bound, usually by a running instance."""

    def __init__(self, host: str, port: int, cause: OSError | None = None) -> None:
        super().__init__(f"Could not listen on {host}:{port}")
        self.host = host
        self.port = port
        self.cause = cause


class ServiceNotRunningError(ControlError):
    """Nothing answered at the control endpoint."""

    def __init__(self, host: str, port: int, cause: OSError | None = None) -> None:
        super().__init__(f"No service listening on {host}:{port}")
        self.host = host
        self.port = port
        self.cause = cause


class SpawnError(ControlError):
    """The detached run process could not be created."""

    def __init__(self, command: list[str], cause: OSError) -> None:
        super().__init__(f"Could not spawn {command[0]!r}: {cause}")
        self.command = command
        self.cause = cause


class MalformedFrameError(ControlError):
    pass


class ConnectionClosed(ControlError):
    """The peer closed the stream before sending a single line."""
