from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "SVCCTL_"


class ServiceControlConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)

    host: str = "127.0.0.1"
    port: int = 6400

    settle_delay_ms: int = 1000
    connect_timeout: float = 5.0
    read_timeout: float | None = None
    listen_read_timeout: float = 5.0
    accept_poll_interval: float = 0.5

    start_command: str = "start"
    run_command: str = "run"
    stop_command: str = "stop"
    restart_command: str = "restart"
    status_command: str = "status"

    probe_message: str = "Service is running"
    check_running_before_start: bool = True

    program_name: str = "svcctl"
    log_file: str = ""

    @property
    def settle_delay(self) -> float:
        return self.settle_delay_ms / 1000.0

    @property
    def verbs(self) -> tuple[str, ...]:
        return (
            self.start_command,
            self.run_command,
            self.stop_command,
            self.restart_command,
            self.status_command,
        )

    def usage(self) -> str:
        choices = "|".join(self.verbs)
        return f"Usage: {self.program_name} {{{choices}}} [args...]"

    def to_env(self) -> dict[str, str]:
        """Render explicitly set fields as environment variables for a child process."""
        env = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            env[f"{ENV_PREFIX}{name.upper()}"] = str(value)
        return env
