"""Error taxonomy for the analysis pipeline.

Only input errors and artifact write failures are exceptional; detector
misses and unsynthesizable invariants are normal outcomes.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ErrorCode(str, Enum):
    """Stable error codes surfaced by the CLI."""

    SOURCE_NOT_FOUND = "SOURCE_NOT_FOUND"
    PARSE_ERROR = "PARSE_ERROR"
    ARTIFACT_WRITE_FAILED = "ARTIFACT_WRITE_FAILED"


class SolShieldError(Exception):
    """Base class for all sol-shield errors."""

    code: ErrorCode = ErrorCode.PARSE_ERROR

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class InputError(SolShieldError):
    """The input source could not be read or parsed. Fatal for the run."""


class SourceNotFoundError(InputError):
    code = ErrorCode.SOURCE_NOT_FOUND

    def __init__(self, path: Path | str) -> None:
        super().__init__(f"File not found: {path}")
        self.path = Path(path)


class ParseError(InputError):
    code = ErrorCode.PARSE_ERROR


class ArtifactWriteError(SolShieldError):
    """A generated artifact could not be written."""

    code = ErrorCode.ARTIFACT_WRITE_FAILED

    def __init__(self, path: Path | str, cause: Exception) -> None:
        super().__init__(f"Could not write {path}: {cause}")
        self.path = Path(path)
        self.cause = cause
