"""CLI entry point for summarizing ``go test -json`` output."""

import argparse
import json
import logging
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import Any

from testjson.errors import ScanError
from testjson.execution import Execution
from testjson.models.event import TestEvent
from testjson.scanner import ScanConfig, scan_test_output

STATUS_SYMBOLS = {
    "pass": "✓",
    "fail": "✗",
    "skip": "-",
}


class MaxFailuresReachedError(Exception):
    """Raised by the handler once too many tests have failed."""


class SummaryHandler:
    """Logs error lines and aborts the scan after max_fails failed tests."""

    def __init__(self, log: logging.Logger, max_fails: int | None = None) -> None:
        self.log = log
        self.max_fails = max_fails
        self.fails = 0

    def event(self, event: TestEvent, execution: Execution) -> None:
        if event.action != "fail" or event.is_package_event:
            return
        self.fails += 1
        self.log.debug("Test failed: %s %s", event.package, event.test)
        if self.max_fails is not None and self.fails >= self.max_fails:
            raise MaxFailuresReachedError(
                f"Ending test run after {self.fails} failure(s)"
            )

    def err(self, text: str) -> None:
        self.log.warning("%s", text)


def log_results_summary(log: logging.Logger, execution: Execution) -> None:
    """Log a formatted summary of package results."""
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for name in execution.packages():
        pkg = execution.package(name)
        if pkg is None:
            continue
        result = pkg.result()
        symbol = STATUS_SYMBOLS.get(result or "", "?")
        log.info(
            "%s %s: %s (%.2fs)%s",
            symbol,
            name or "(build)",
            result or "incomplete",
            pkg.elapsed().total_seconds(),
            " (cached)" if pkg.cached else "",
        )
        if pkg.coverage:
            log.info("  %s", pkg.coverage)
        for test_case in pkg.failed:
            log.info(
                "  Failed: %s (%.2fs)",
                test_case.test,
                test_case.elapsed.total_seconds(),
            )

    log.info(
        "DONE %d tests, %d skipped, %d failures, %d errors in %.3fs",
        execution.total(),
        len(execution.skipped()),
        len(execution.failed()),
        len(execution.errors()),
        execution.elapsed().total_seconds(),
    )


def format_output(execution: Execution) -> dict[str, Any]:
    """Format the execution for JSON output."""
    packages: list[dict[str, Any]] = []
    for name in execution.packages():
        pkg = execution.package(name)
        if pkg is None:
            continue
        packages.append(
            {
                "package": name,
                "result": pkg.result(),
                "passed": len(pkg.passed),
                "failed": len(pkg.failed),
                "skipped": len(pkg.skipped),
                "elapsed": pkg.elapsed().total_seconds(),
                "cached": pkg.cached,
                "coverage": pkg.coverage or None,
                "build_failed": pkg.build_failed,
            }
        )

    return {
        "total": execution.total(),
        "failed": len(execution.failed()),
        "skipped": len(execution.skipped()),
        "errors": len(execution.errors()),
        "panicked": execution.has_panic(),
        "packages": packages,
    }


def run(
    input_path: Path | None,
    stderr_path: Path | None = None,
    max_fails: int | None = None,
) -> int:
    """Scan test output and return exit code."""
    log = logging.getLogger("testjson")
    execution = Execution()
    aborted = False

    with ExitStack() as stack:
        if input_path is None:
            stdout = sys.stdin.buffer
        else:
            stdout = stack.enter_context(input_path.open("rb"))
        stderr = None
        if stderr_path is not None:
            stderr = stack.enter_context(stderr_path.open("rb"))

        config = ScanConfig(
            stdout=stdout,
            stderr=stderr,
            handler=SummaryHandler(log, max_fails),
            stop=lambda: log.warning("Stopping test output scan"),
            execution=execution,
        )
        try:
            scan_test_output(config)
        except ScanError as exc:
            log.error("Failed to scan test output: %s", exc)
            aborted = True

    for event in execution.end():
        log.warning("Test did not complete: %s %s", event.package, event.test)

    log_results_summary(log, execution)
    print(json.dumps(format_output(execution), indent=2))

    has_failures = any(
        pkg is not None and pkg.result() == "fail"
        for pkg in map(execution.package, execution.packages())
    )
    return 1 if aborted or has_failures else 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Summarize go test -json output")
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        default=None,
        help="File containing go test -json output (default: stdin)",
    )
    parser.add_argument(
        "--stderr",
        type=Path,
        default=None,
        help="File containing the stderr of the go test command",
    )
    parser.add_argument(
        "--max-fails",
        type=int,
        default=None,
        help="Stop scanning after this many tests have failed",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = run(
        input_path=args.input,
        stderr_path=args.stderr,
        max_fails=args.max_fails,
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
