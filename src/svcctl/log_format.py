import logging
import sys

RESET = "\033[0m"
DIM = "\033[2m"
BOLD = "\033[1m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
BLUE = "\033[34m"
MAGENTA = "\033[35m"

LEVEL_COLORS = {
    logging.DEBUG: DIM,
    logging.INFO: GREEN,
    logging.WARNING: YELLOW,
    logging.ERROR: RED,
    logging.CRITICAL: RED + BOLD,
}

PLAIN_FORMAT = "%(asctime)s %(threadName)s %(name)s %(levelname)s %(message)s"
DATE_FORMAT = "%H:%M:%S"

# First matching marker wins.
HIGHLIGHTS = (
    ("State: ", BOLD + CYAN),
    ("Stop requested", BOLD + MAGENTA),
    ("Could not listen on", BOLD + RED),
    ("Spawn failed", BOLD + RED),
    ("Control connection from", BLUE),
    ("listening at", CYAN),
    ("Spawning", CYAN),
    ("spawned with pid", CYAN),
)


def highlight(msg: str) -> str | None:
    for marker, style in HIGHLIGHTS:
        if marker in msg:
            return style
    return None


class ColoredFormatter(logging.Formatter):
    """One line per record; control-plane events colored, listener thread tagged."""

    def format(self, record: logging.LogRecord) -> str:
        level_color = LEVEL_COLORS.get(record.levelno, "")
        msg = record.getMessage()

        style = highlight(msg)
        if style is None and record.levelno >= logging.WARNING:
            style = level_color
        elif style is None and record.levelno == logging.DEBUG:
            style = DIM
        if style:
            msg = f"{style}{msg}{RESET}"

        source = record.name.rsplit(".", 1)[-1]
        if record.threadName != "MainThread":
            source = f"{source}@{record.threadName}"

        line = (
            f"{DIM}{self.formatTime(record, self.datefmt)}{RESET} "
            f"{level_color}{record.levelname:<7}{RESET} {DIM}{source:<20}{RESET} {msg}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    if sys.stderr.isatty():
        handler.setFormatter(ColoredFormatter(datefmt=DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT))

    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, handlers=[handler], force=True)
