import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
from typing import BinaryIO

from svcctl.domain.errors import ConnectionClosed, MalformedFrameError

ENCODING = "utf-8"
MAX_LINE_BYTES = 64 * 1024


@dataclass(frozen=True)
class ServiceEndpoint:
    host: str = "127.0.0.1"
    port: int = 6400

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class CommandFrame:
    command: str
    args: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.command:
            raise MalformedFrameError("Command frame needs a non-empty command")
        object.__setattr__(self, "args", tuple(self.args))


def _check_line(line: str, what: str) -> str:
    if not line:
        raise MalformedFrameError(f"Empty {what} cannot be sent: it reads as end of frame")
    if "\n" in line or "\r" in line:
        raise MalformedFrameError(f"{what.capitalize()} must not contain line breaks: {line!r}")
    return line


def encode_command(frame: CommandFrame) -> bytes:
    lines = [_check_line(frame.command, "command")]
    lines.extend(_check_line(arg, "argument") for arg in frame.args)
    return ("\n".join(lines) + "\n\n").encode(ENCODING)


def encode_response(lines: Iterable[str]) -> bytes:
    """Encode output lines; a line holding line breaks is sent as several lines."""
    out = []
    for line in lines:
        for piece in line.splitlines() or [""]:
            out.append(_check_line(piece, "response line") + "\n")
    out.append("\n")
    return "".join(out).encode(ENCODING)


class FrameDecoder:
    """Collects lines until the blank-line sentinel."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.done = False

    def feed(self, raw: bytes) -> bool:
        if self.done:
            raise MalformedFrameError("Frame already terminated")
        if not raw:
            if not self.lines:
                raise ConnectionClosed("Stream closed before any line was read")
            self.done = True
            return True
        if not raw.endswith(b"\n") and len(raw) >= MAX_LINE_BYTES:
            raise MalformedFrameError(f"Line longer than {MAX_LINE_BYTES} bytes")
        try:
            line = raw.decode(ENCODING).rstrip("\r\n")
        except UnicodeDecodeError as exc:
            raise MalformedFrameError(f"Line is not valid {ENCODING}") from exc
        if not line:
            self.done = True
            return True
        self.lines.append(line)
        return False

    def command(self) -> CommandFrame:
        if not self.lines:
            raise MalformedFrameError("Command frame without a command line")
        return CommandFrame(command=self.lines[0], args=tuple(self.lines[1:]))

    def response(self) -> tuple[str, ...]:
        return tuple(self.lines)


def _read_lines(stream: BinaryIO) -> FrameDecoder:
    decoder = FrameDecoder()
    while not decoder.feed(stream.readline(MAX_LINE_BYTES)):
        pass
    return decoder


def read_command(stream: BinaryIO) -> CommandFrame:
    return _read_lines(stream).command()


def read_response(stream: BinaryIO) -> tuple[str, ...]:
    return _read_lines(stream).response()


async def read_response_async(reader: asyncio.StreamReader, timeout: float | None = None) -> tuple[str, ...]:
    decoder = FrameDecoder()
    while True:
        raw = await asyncio.wait_for(reader.readline(), timeout=timeout)
        if decoder.feed(raw):
            return decoder.response()
