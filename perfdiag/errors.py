"""Structured errors raised by the analysis pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AnalysisError(Exception):
    """Structured error with enough context for a caller to degrade gracefully."""

    stage: str
    reason: str
    suggestion: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        msg = f"[{self.stage}] {self.reason}"
        if self.suggestion:
            msg += f". Suggestion: {self.suggestion}"
        return msg

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": True,
            "kind": type(self).__name__,
            "stage": self.stage,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "details": self.details,
        }


@dataclass
class MissingTraceDataError(AnalysisError):
    stage: str = "trace"
    reason: str = "Trace is missing"
    suggestion: str = "Capture a performance trace for this page load"


@dataclass
class ResolutionError(AnalysisError):
    stage: str = "resolve"
    reason: str = "Node resolution failed"
    suggestion: str = "Ensure the page is still open and the DevTools session is alive"


@dataclass
class InputError(AnalysisError):
    stage: str = "input"
    reason: str = "Input file could not be read"
    suggestion: str = "Check the path and that the file is UTF-8 text"


@dataclass
class InvalidSourceMapError(AnalysisError):
    stage: str = "sourcemap"
    reason: str = "Source map is invalid"
    suggestion: str = "Regenerate the source map for this bundle"


class CdpError(Exception):
    """Transport-level failure talking to the DevTools websocket."""


__all__ = [
    "AnalysisError",
    "CdpError",
    "InputError",
    "InvalidSourceMapError",
    "MissingTraceDataError",
    "ResolutionError",
]
