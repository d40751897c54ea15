"""Error types raised by DocScout."""

from __future__ import annotations

from typing import Sequence


class DocScoutError(Exception):
    """Base class for errors that carry a stable code and status."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class FrameworkNotFoundError(DocScoutError):
    """The caller asked to filter by a framework that is not recognized."""

    code = "FRAMEWORK_NOT_FOUND"
    status_code = 400

    def __init__(self, framework: str, available: Sequence[str] | None = None) -> None:
        suffix = f" Available frameworks: {', '.join(available)}" if available else ""
        super().__init__(f"Framework '{framework}' not found.{suffix}")
        self.framework = framework
        self.available = tuple(available or ())


class DocsPathNotFoundError(DocScoutError):
    code = "DOCS_PATH_NOT_FOUND"


class RemoteSourceError(DocScoutError):
    code = "REMOTE_SOURCE_ERROR"
    status_code = 502
