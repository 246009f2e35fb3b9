"""Scanning of ``go test -json`` output into an Execution."""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import BinaryIO, Literal, Protocol

from testjson.errors import (
    HandlerFailureError,
    MalformedEventError,
    StreamFailureError,
)
from testjson.execution import Execution
from testjson.models.event import TestEvent, parse_event
from testjson.output import is_module_output

log = logging.getLogger(__name__)

type ScanState = Literal["running", "stopped-ok", "stopped-error"]


class EventHandler(Protocol):
    """Receives every event and error line while a scan is in progress.

    Raising from either method aborts the scan.
    """

    def event(self, event: TestEvent, execution: Execution) -> None:
        """Handle an event, after it was applied to the execution."""

    def err(self, text: str) -> None:
        """Handle a line of output which is not a test event."""


class NoopHandler:
    """Handler used when the caller does not provide one."""

    def event(self, event: TestEvent, execution: Execution) -> None:
        """Ignore the event."""

    def err(self, text: str) -> None:
        """Ignore the error line."""


@dataclass(frozen=True, kw_only=True)
class ScanConfig:
    """Inputs of a scan.

    ``stop`` is called once if the scan fails, typically to terminate the
    test process writing to ``stdout``.
    """

    stdout: BinaryIO
    stderr: BinaryIO | None = None
    handler: EventHandler | None = None
    stop: Callable[[], None] | None = None
    execution: Execution | None = None


class Scanner:
    """Reads test output line by line and applies each event to an Execution."""

    def __init__(self, config: ScanConfig) -> None:
        self.config = config
        self.handler: EventHandler = config.handler or NoopHandler()
        self.execution = (
            config.execution if config.execution is not None else Execution()
        )
        self.state: ScanState = "running"

    def scan(self) -> Execution:
        """Scan the configured streams until they are exhausted.

        Returns:
            The execution built from the stream

        Raises:
            HandlerFailureError: If the handler raised
            StreamFailureError: If reading from a stream failed
            Exception: Any other error is raised unchanged after stop is called
            RuntimeError: If the scanner was already used

        """
        if self.state != "running":
            raise RuntimeError(f"Scanner already finished ({self.state})")

        log.info("Scanning test output")
        try:
            self._read_stdout()
            if self.config.stderr is not None:
                self._read_stderr(self.config.stderr)
        except Exception as exc:
            self.state = "stopped-error"
            log.error("Scan aborted: %s", exc)
            if self.config.stop is not None:
                self.config.stop()
            raise

        self.state = "stopped-ok"
        log.info(
            "Scan completed: %d package(s), %d test(s)",
            len(self.execution.packages()),
            self.execution.total(),
        )
        return self.execution

    def _read_stdout(self) -> None:
        for line in _read_lines(self.config.stdout):
            try:
                event = parse_event(line)
            except MalformedEventError as exc:
                log.debug("%s", exc)
                self._report(exc.text)
                continue

            self.execution.add(event)
            try:
                self.handler.event(event, self.execution)
            except Exception as exc:
                raise HandlerFailureError(str(exc)) from exc

    def _read_stderr(self, stream: BinaryIO) -> None:
        for line in _read_lines(stream):
            text = line.decode("utf-8", errors="replace")
            if not is_module_output(text):
                self.execution.add_error(text)
            self._handle_err(text)

    def _report(self, text: str) -> None:
        self.execution.add_error(text)
        self._handle_err(text)

    def _handle_err(self, text: str) -> None:
        try:
            self.handler.err(text)
        except Exception as exc:
            raise HandlerFailureError(str(exc)) from exc


def _read_lines(stream: BinaryIO) -> Iterator[bytes]:
    while True:
        try:
            line = stream.readline()
        except (OSError, ValueError) as exc:
            raise StreamFailureError(f"Failed to scan test output: {exc}") from exc
        if not line:
            return
        if not isinstance(line, bytes):
            raise StreamFailureError(
                f"Failed to scan test output: expected bytes, got {type(line).__name__}"
            )
        yield line.rstrip(b"\r\n")


def scan_test_output(config: ScanConfig) -> Execution:
    """Build an Execution from the output of ``go test -json``.

    Lines which are not valid test events are reported to the handler and
    recorded as execution errors, the scan continues past them.
    """
    return Scanner(config).scan()
