"""Models for events decoded from ``go test -json`` output."""

import math
import re
from datetime import datetime, timedelta
from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, Field, ValidationError

from testjson.errors import MalformedEventError
from testjson.models.base import Model

Action = Literal[
    "start",
    "run",
    "pause",
    "cont",
    "output",
    "pass",
    "fail",
    "skip",
    "bench",
    "build-output",
    "build-fail",
]

TerminalAction = Literal["pass", "fail", "skip"]

TERMINAL_ACTIONS: frozenset[str] = frozenset({"pass", "fail", "skip"})

_SUB_MICROSECOND = re.compile(r"(\.\d{6})\d+")


def _truncate_to_microseconds(value: Any) -> Any:
    """Drop fraction digits beyond microseconds from an RFC3339 timestamp."""
    if isinstance(value, str):
        return _SUB_MICROSECOND.sub(r"\1", value, count=1)
    return value


def _seconds_to_timedelta(value: Any) -> Any:
    if isinstance(value, int | float) and not isinstance(value, bool):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"elapsed must be finite, got {value}")
        try:
            return timedelta(seconds=value)
        except OverflowError as exc:
            raise ValueError(f"elapsed out of range: {value}") from exc
    return value


Timestamp = Annotated[datetime, BeforeValidator(_truncate_to_microseconds)]
Seconds = Annotated[timedelta, BeforeValidator(_seconds_to_timedelta)]


class TestEvent(Model):
    """A single event emitted by ``go test -json``.

    An event with an empty ``test`` applies to the whole package.
    """

    __test__ = False

    time: Timestamp | None = Field(default=None, alias="Time")
    action: Action = Field(..., alias="Action")
    package: str = Field(default="", alias="Package")
    test: str = Field(default="", alias="Test")
    elapsed: Seconds | None = Field(default=None, alias="Elapsed")
    output: str = Field(default="", alias="Output")
    failed_build: str = Field(default="", alias="FailedBuild")
    import_path: str = Field(default="", alias="ImportPath")
    raw: bytes = Field(default=b"", exclude=True, repr=False)

    @property
    def is_package_event(self) -> bool:
        """True when the event is not scoped to a single test."""
        return not self.test

    @property
    def is_terminal(self) -> bool:
        """True for pass, fail and skip events."""
        return self.action in TERMINAL_ACTIONS


def parse_event(raw: bytes) -> TestEvent:
    """Parse one line of ``go test -json`` output.

    Args:
        raw: The line, without its trailing newline

    Returns:
        The parsed event, with ``raw`` set to the unmodified input

    Raises:
        MalformedEventError: If the line is not a valid test event

    """
    try:
        event = TestEvent.model_validate_json(raw)
    except ValidationError as exc:
        reason = "; ".join(error["msg"] for error in exc.errors())
        raise MalformedEventError(raw, reason) from exc
    return event.model_copy(update={"raw": raw})
