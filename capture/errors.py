"""
Error taxonomy for a capture run.

BrowserError and setup-time FileSystemError abort the run. CaptureError is
per route: it is retried where a budget applies, then recorded on the route's
CaptureResult while the crawl continues.
"""

from __future__ import annotations

from typing import Optional


class BrowserError(Exception):
    """Raised when the browser (or a worker's session) cannot be initialized."""


class CaptureError(Exception):
    """Raised when navigation or capture of a single route fails."""

    def __init__(self, url: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.url = url
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class FileSystemError(OSError):
    """Raised when a filesystem operation needed for capture or reporting fails."""

    def __init__(self, path: str, operation: str, cause: Optional[BaseException] = None):
        super().__init__(f"{operation} failed for {path}: {cause}")
        self.path = path
        self.operation = operation
        self.cause = cause
