import logging

from svcctl.adapters.console_hooks import ConsoleHooks
from svcctl.adapters.process_launcher import ExecutableSpec, ProcessLauncher
from svcctl.config import ServiceControlConfig
from svcctl.controller import ServiceController
from svcctl.ports.service import Service, ServiceHooks

logger = logging.getLogger(__name__)


def create_hooks(config: ServiceControlConfig) -> ConsoleHooks:
    return ConsoleHooks(usage=config.usage())


def create_launcher(
    config: ServiceControlConfig,
    executable: ExecutableSpec | None = None,
) -> ProcessLauncher:
    return ProcessLauncher(
        executable=executable,
        env=config.to_env(),
        log_file=config.log_file,
    )


def create_controller(
    service: Service,
    config: ServiceControlConfig | None = None,
    hooks: ServiceHooks | None = None,
    executable: ExecutableSpec | None = None,
) -> ServiceController:
    config = config or ServiceControlConfig()
    launcher = create_launcher(config, executable)
    logger.debug("Controller for %s:%d using %s", config.host, config.port, " ".join(launcher.executable.argv))
    return ServiceController(
        service=service,
        config=config,
        hooks=hooks or create_hooks(config),
        launcher=launcher,
    )
