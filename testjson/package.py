"""Aggregate state of a single test package."""

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from itertools import chain

from testjson.models.event import Action, TestEvent
from testjson.models.result import TestCase
from testjson.output import (
    BuildFailed,
    Coverage,
    classify_output,
    is_cached_output,
    is_panic_output,
)

PACKAGE_OUTPUT_ID = 0


@dataclass(kw_only=True)
class Package:
    """Results of a single package, built up one event at a time.

    Output is grouped by the id of the test that was running when it was
    emitted. Output with no running test is stored under PACKAGE_OUTPUT_ID.
    """

    action: Action | None = None
    reported_elapsed: timedelta | None = None
    cached: bool = False
    coverage: str = ""
    panicked: bool = False
    build_failed: bool = False
    running: dict[str, TestCase] = field(default_factory=dict)
    passed: list[TestCase] = field(default_factory=list)
    failed: list[TestCase] = field(default_factory=list)
    skipped: list[TestCase] = field(default_factory=list)
    output: dict[int, list[str]] = field(default_factory=dict)
    last_id: int = field(default=0, compare=False, repr=False)

    @property
    def total(self) -> int:
        """Number of tests which reached a terminal action."""
        return len(self.passed) + len(self.failed) + len(self.skipped)

    def elapsed(self) -> timedelta:
        """Sum of the elapsed time of every completed test.

        Running tests are not counted, and the elapsed time reported by the
        package-level event is ignored.
        """
        return sum(
            (tc.elapsed for tc in chain(self.passed, self.failed, self.skipped)),
            timedelta(0),
        )

    def result(self) -> Action | None:
        """The terminal action of the package.

        A package with failed tests is a failure even when the package-level
        event never arrived.
        """
        if self.action is None and self.failed:
            return "fail"
        return self.action

    def test_cases(self) -> Sequence[TestCase]:
        """Completed tests ordered by the sequence they started in."""
        completed = chain(self.passed, self.failed, self.skipped)
        return sorted(completed, key=lambda tc: tc.id)

    def output_lines(self, test_case: TestCase | None = None) -> Sequence[str]:
        """Output lines of a test, or of the package when test_case is None."""
        output_id = PACKAGE_OUTPUT_ID if test_case is None else test_case.id
        return list(self.output.get(output_id, []))

    def output_text(self, test_case: TestCase | None = None) -> str:
        """Output of a test, or of the package, joined into one string."""
        return "".join(self.output_lines(test_case))

    def add_event(self, event: TestEvent) -> None:
        """Apply a single event to the package."""
        if event.is_package_event:
            self._add_package_event(event)
        else:
            self._add_test_event(event)

    def _add_package_event(self, event: TestEvent) -> None:
        match event.action:
            case "pass" | "fail" | "skip":
                self.action = event.action
                if event.elapsed is not None:
                    self.reported_elapsed = event.elapsed
                if event.failed_build:
                    self.build_failed = True
            case "build-fail":
                self.action = "fail"
                self.build_failed = True
            case _:
                if event.output:
                    self._add_output(PACKAGE_OUTPUT_ID, event.output)

    def _add_test_event(self, event: TestEvent) -> None:
        match event.action:
            case "run":
                self.running[event.test] = self._new_test_case(event)
            case "pass" | "fail" | "skip":
                self._complete(event)
            case _:
                if event.output:
                    running = self.running.get(event.test)
                    output_id = PACKAGE_OUTPUT_ID if running is None else running.id
                    self._add_output(output_id, event.output)

    def _new_test_case(self, event: TestEvent) -> TestCase:
        self.last_id += 1
        return TestCase(package=event.package, test=event.test, id=self.last_id)

    def _complete(self, event: TestEvent) -> None:
        # go test omits the run event for some tests, so a terminal event for
        # an unknown test creates the test case directly.
        running = self.running.pop(event.test, None) or self._new_test_case(event)
        test_case = dataclasses.replace(
            running,
            action=event.action,
            elapsed=event.elapsed or timedelta(0),
        )
        match event.action:
            case "pass":
                self.passed.append(test_case)
            case "fail":
                self.failed.append(test_case)
            case "skip":
                self.skipped.append(test_case)

    def _add_output(self, output_id: int, line: str) -> None:
        self.output.setdefault(output_id, []).append(line)

        if is_panic_output(line):
            self.panicked = True
        if is_cached_output(line):
            self.cached = True

        match classify_output(line):
            case Coverage(text=text):
                self.coverage = text
            case BuildFailed():
                self.action = "fail"
                self.build_failed = True
