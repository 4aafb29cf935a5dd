import ipaddress
import logging
import os
import shutil
import socket
from dataclasses import dataclass

from svcctl.adapters.process_launcher import ExecutableSpec
from svcctl.config import ServiceControlConfig

logger = logging.getLogger(__name__)

CRITICAL_CHECKS = {"loopback_endpoint", "port_range"}


@dataclass
class HealthCheckResult:
    name: str
    passed: bool
    detail: str


def run_startup_checks(
    config: ServiceControlConfig,
    executable: ExecutableSpec | None = None,
) -> list[HealthCheckResult]:
    results = [
        _check_port_range(config),
        _check_loopback_endpoint(config),
    ]
    if executable is not None:
        results.append(_check_launcher_executable(executable))

    passed = sum(1 for r in results if r.passed)
    logger.debug("Startup checks: %d/%d passed", passed, len(results))
    for result in results:
        level = logging.DEBUG if result.passed else logging.WARNING
        symbol = "OK" if result.passed else "FAIL"
        logger.log(level, "  [%s] %s: %s", symbol, result.name, result.detail)

    return results


def has_critical_failures(results: list[HealthCheckResult]) -> bool:
    return any(not r.passed and r.name in CRITICAL_CHECKS for r in results)


def _check_port_range(config: ServiceControlConfig) -> HealthCheckResult:
    name = "port_range"
    if 0 < config.port < 65536:
        return HealthCheckResult(name=name, passed=True, detail=f"port {config.port}")
    return HealthCheckResult(name=name, passed=False, detail=f"port {config.port} is outside 1-65535")


def _check_loopback_endpoint(config: ServiceControlConfig) -> HealthCheckResult:
    name = "loopback_endpoint"
    try:
        infos = socket.getaddrinfo(config.host, None, proto=socket.IPPROTO_TCP)
    except socket.gaierror as exc:
        return HealthCheckResult(name=name, passed=False, detail=f"cannot resolve {config.host!r}: {exc}")

    addresses = {info[4][0] for info in infos}
    remote = sorted(a for a in addresses if not ipaddress.ip_address(a.split("%")[0]).is_loopback)
    if remote:
        return HealthCheckResult(
            name=name,
            passed=False,
            detail=f"{config.host!r} resolves to non-loopback address(es) {', '.join(remote)}",
        )
    return HealthCheckResult(name=name, passed=True, detail=f"{config.host} -> {', '.join(sorted(addresses))}")


def _check_launcher_executable(executable: ExecutableSpec) -> HealthCheckResult:
    name = "launcher_executable"
    if not executable.argv:
        return HealthCheckResult(name=name, passed=False, detail="empty launch command")
    program = executable.argv[0]
    resolved = program if os.path.isabs(program) else shutil.which(program)
    if resolved and os.access(resolved, os.X_OK):
        return HealthCheckResult(name=name, passed=True, detail=resolved)
    return HealthCheckResult(name=name, passed=False, detail=f"{program!r} is not an executable file")
