import argparse
import logging
import sys

from svcctl.clock import ClockService
from svcctl.config import ServiceControlConfig
from svcctl.domain.errors import SpawnError
from svcctl.factory import create_controller
from svcctl.log_format import setup_logging


def main() -> None:
    parser = argparse.ArgumentParser(prog="svcctl", description="Clock demo service under svcctl control")
    parser.add_argument("--port", type=int, help="Control port")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("verb", nargs="?", help="start, run, stop, restart or status")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Arguments forwarded to the service")

    args = parser.parse_args()
    setup_logging(verbose=args.verbose)

    config = ServiceControlConfig()
    if args.port is not None:
        config.port = args.port

    controller = create_controller(ClockService(), config=config)
    argv = [args.verb, *args.args] if args.verb else []
    try:
        sys.exit(controller.execute(argv))
    except SpawnError as exc:
        logging.error("Could not start the service: %s", exc.cause)
        sys.exit(1)
    except KeyboardInterrupt:
        logging.info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
