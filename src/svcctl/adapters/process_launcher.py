import logging
import os
import subprocess
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from svcctl.domain.errors import SpawnError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutableSpec:
    """argv prefix that re-runs the current program."""

    argv: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def current(cls) -> "ExecutableSpec":
        return cls(argv=tuple(_current_program_argv()), env={"PYTHONPATH": _module_search_path()})


def _current_program_argv() -> list[str]:
    main_spec = getattr(sys.modules.get("__main__"), "__spec__", None)
    if main_spec is not None and main_spec.name:
        module = main_spec.name
        if module.endswith(".__main__"):
            module = module[: -len(".__main__")]
        return [sys.executable, "-m", module]
    return [sys.executable, os.path.abspath(sys.argv[0])]


def _module_search_path() -> str:
    entries = [entry or os.getcwd() for entry in sys.path]
    return os.pathsep.join(dict.fromkeys(entries))


class ProcessLauncher:
    def __init__(
        self,
        executable: ExecutableSpec | None = None,
        env: Mapping[str, str] | None = None,
        log_file: str = "",
    ) -> None:
        self._executable = executable or ExecutableSpec.current()
        self._env = dict(env or {})
        self._log_file = log_file

    @property
    def executable(self) -> ExecutableSpec:
        return self._executable

    def build_command(self, run_verb: str, args: Sequence[str]) -> list[str]:
        return [*self._executable.argv, run_verb, *args]

    def _build_environment(self) -> dict[str, str]:
        environment = dict(os.environ)
        environment.update(self._executable.env)
        environment.update(self._env)
        return environment

    def spawn(self, run_verb: str, args: Sequence[str]) -> subprocess.Popen:
        command = self.build_command(run_verb, args)
        logger.info("Spawning service process: %s", " ".join(command))
        try:
            if self._log_file:
                with open(self._log_file, "a") as output:
                    return self._popen(command, output)
            return self._popen(command, subprocess.DEVNULL)
        except OSError as exc:
            raise SpawnError(command, exc) from exc

    def _popen(self, command: list[str], output) -> subprocess.Popen:
        process = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=output,
            stderr=output,
            env=self._build_environment(),
            start_new_session=True,
        )
        logger.debug("Service process spawned with pid %d", process.pid)
        return process
