import logging
import threading
from enum import Enum, auto

logger = logging.getLogger(__name__)


class ServiceState(Enum):
    NOT_RUNNING = auto()
    STARTING = auto()
    RUNNING = auto()
    STOPPING = auto()


VALID_TRANSITIONS: dict[ServiceState, set[ServiceState]] = {
    ServiceState.NOT_RUNNING: {ServiceState.STARTING},
    ServiceState.STARTING: {ServiceState.RUNNING, ServiceState.NOT_RUNNING},
    ServiceState.RUNNING: {ServiceState.STOPPING},
    ServiceState.STOPPING: {ServiceState.NOT_RUNNING},
}


class InvalidTransitionError(Exception):
    pass


def validate_transition(current: ServiceState, target: ServiceState) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")


class ServiceStateTracker:
    """Runtime state of one run invocation, shared by the run flow and the listener."""

    def __init__(self) -> None:
        self._state = ServiceState.NOT_RUNNING
        self._lock = threading.Lock()

    @property
    def state(self) -> ServiceState:
        return self._state

    def transition(self, target: ServiceState) -> None:
        with self._lock:
            validate_transition(self._state, target)
            logger.info("State: %s -> %s", self._state.name, target.name)
            self._state = target

    def transition_if(self, current: ServiceState, target: ServiceState) -> bool:
        with self._lock:
            if self._state is not current:
                return False
            validate_transition(current, target)
            logger.info("State: %s -> %s", current.name, target.name)
            self._state = target
            return True
