"""Detection of signals embedded in free-text test output lines."""

from dataclasses import dataclass

BUILD_FAILURE_MARKERS = ("[build failed]", "[setup failed]")
MODULE_OUTPUT_PREFIXES = ("go: downloading ", "go: finding ", "go: extracting ")


@dataclass(frozen=True)
class Coverage:
    """A coverage summary line, without its trailing newline."""

    text: str


@dataclass(frozen=True)
class Cached:
    """The package result was served from the test cache."""


@dataclass(frozen=True)
class BuildFailed:
    """The package failed to compile, no pass or fail event will follow."""


type OutputSignal = Coverage | Cached | BuildFailed | None


def classify_output(line: str) -> OutputSignal:
    """Classify a single output line.

    A line carries at most one signal. Build failure takes precedence over
    coverage, and coverage over a cache hit, so ``coverage: ... (cached)``
    classifies as Coverage. Use :func:`is_cached_output` to detect cache hits
    independently of the other signals.

    Args:
        line: Output text exactly as emitted, usually newline terminated

    Returns:
        The signal carried by the line, or None for ordinary output

    """
    if any(marker in line for marker in BUILD_FAILURE_MARKERS):
        return BuildFailed()
    if line.startswith("coverage:") and "of statements" in line:
        return Coverage(text=line.rstrip("\n"))
    if is_cached_output(line):
        return Cached()
    return None


def is_cached_output(line: str) -> bool:
    """Check if the line reports a result served from the test cache."""
    return "(cached)" in line


def is_panic_output(line: str) -> bool:
    """Check if the line starts a panic trace."""
    return line.startswith("panic: ")


def is_module_output(line: str) -> bool:
    """Check if a stderr line is Go module download progress."""
    return line.startswith(MODULE_OUTPUT_PREFIXES)
