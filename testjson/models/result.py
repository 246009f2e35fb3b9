"""Models for per-test results."""

from dataclasses import dataclass
from datetime import timedelta

from testjson.models.event import TerminalAction


@dataclass(frozen=True, kw_only=True)
class TestCase:
    """A single test within a package, identified by package and test name.

    ``action`` stays None while the test is running. Once the test reaches a
    terminal action a new TestCase is built with the action and elapsed time.
    """

    __test__ = False

    package: str
    test: str
    id: int
    elapsed: timedelta = timedelta(0)
    action: TerminalAction | None = None
