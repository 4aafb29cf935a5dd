import threading
from dataclasses import dataclass, field


@dataclass
class RunLocks:
    """Lock pair owned by a controller for the lifetime of one run invocation.

    ``execution`` is held by the run flow while the service's ``start`` body
    executes; the listener takes it before acknowledging a stop, so the
    acknowledgement can only leave once ``start`` has returned.

    ``shutdown`` is held by the listener for each control exchange and by the
    run flow while it closes the listening socket.
    """

    execution: threading.Lock = field(default_factory=threading.Lock)
    shutdown: threading.Lock = field(default_factory=threading.Lock)
