"""Aggregate state of a whole ``go test -json`` run."""

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime, timedelta

from testjson.models.event import TestEvent
from testjson.models.result import TestCase
from testjson.package import Package

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Execution:
    """The state of every package seen in a test run.

    The scanner is the only writer while a scan is in progress. Once the scan
    finishes the execution is only queried.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self.started = clock()
        self._packages: dict[str, Package] = {}
        self._errors: list[str] = []

    def add(self, event: TestEvent) -> None:
        """Apply an event to the package it references."""
        pkg = self._packages.get(event.package)
        if pkg is None:
            pkg = self._packages[event.package] = Package()
        pkg.add_event(event)

    def add_error(self, text: str) -> None:
        """Record a line of output which was not a test event."""
        self._errors.append(text)

    def end(self) -> Sequence[TestEvent]:
        """Fail every test which is still running.

        Called once the stream is exhausted. Tests are left running when the
        test binary was killed or timed out before reporting a result.

        Returns:
            The synthesized fail events, already applied to the execution

        """
        now = self._clock()
        events: list[TestEvent] = []
        for name in self.packages():
            pkg = self._packages[name]
            running = sorted(pkg.running.values(), key=lambda tc: tc.id)
            for test_case in running:
                log.debug("Test did not complete: %s %s", name, test_case.test)
                events.append(
                    TestEvent(
                        time=now,
                        action="fail",
                        package=name,
                        test=test_case.test,
                        elapsed=timedelta(0),
                    )
                )
        for event in events:
            self.add(event)
        return events

    def package(self, name: str) -> Package | None:
        """Return the package with the given import path, if seen."""
        return self._packages.get(name)

    def packages(self) -> Sequence[str]:
        """Sorted names of every package seen."""
        return sorted(self._packages)

    def total(self) -> int:
        """Number of tests which reached a terminal action."""
        return sum(pkg.total for pkg in self._packages.values())

    def failed(self) -> Sequence[TestCase]:
        """Failed tests, ordered by package and then start order."""
        return self._sorted(tc for pkg in self._packages.values() for tc in pkg.failed)

    def skipped(self) -> Sequence[TestCase]:
        """Skipped tests, ordered by package and then start order."""
        return self._sorted(tc for pkg in self._packages.values() for tc in pkg.skipped)

    def errors(self) -> Sequence[str]:
        """Lines reported as errors while scanning."""
        return list(self._errors)

    def elapsed(self) -> timedelta:
        """Wall clock time since the execution was created."""
        return self._clock() - self.started

    def has_panic(self) -> bool:
        """Check if any package output contained a panic."""
        return any(pkg.panicked for pkg in self._packages.values())

    def output_lines(
        self, package: str, test_case: TestCase | None = None
    ) -> Sequence[str]:
        """Output lines of a test, or of a package when test_case is None."""
        pkg = self._packages.get(package)
        if pkg is None:
            return []
        return pkg.output_lines(test_case)

    @staticmethod
    def _sorted(test_cases: Iterable[TestCase]) -> Sequence[TestCase]:
        return sorted(test_cases, key=lambda tc: (tc.package, tc.id))
