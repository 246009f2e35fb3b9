"""Errors raised while scanning test output."""


class ScanError(Exception):
    """Base class for errors raised while scanning test output."""


class MalformedEventError(ScanError):
    """Raised when a single line cannot be parsed as a test event.

    The scanner recovers from this error, it never leaves ``scan_test_output``.
    """

    def __init__(self, line: bytes, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"Malformed test event ({reason}): {self.text}")

    @property
    def text(self) -> str:
        """The offending line decoded for display."""
        return self.line.decode("utf-8", errors="replace")


class HandlerFailureError(ScanError):
    """Raised when the event handler fails, aborting the scan."""


class StreamFailureError(ScanError):
    """Raised when reading the test output stream fails, aborting the scan."""
