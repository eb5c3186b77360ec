"""
Exception hierarchy for catalogue correlation.

Every error carries a ``context`` dictionary with whatever the raising site
knew (method name, tool, file paths, return code). The message stays
human-readable; the context is for logging and for callers that want to decide
whether to retry with different parameters.

Taxonomy
--------
ConfigurationError
    A required session setting is missing or invalid (e.g. no method chosen).
MethodNotFoundError
    No backend is registered under the requested name, or it cannot run in
    this environment.
InvalidInputError
    The input catalogues are malformed or not comparable.
ExternalToolError
    The external matcher is missing, failed, timed out or produced unusable
    output.
"""

from __future__ import annotations

from typing import Any


class CorrelationError(Exception):
    """Base class for all correlation errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    **context : Any
        Additional context for logging.
    """

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class ConfigurationError(CorrelationError):
    """Raised when a required correlation setting is missing or invalid."""


class MethodNotFoundError(CorrelationError, LookupError):
    """Raised when a correlation method name cannot be resolved to a backend."""

    def __init__(self, method: str, available: list[str] | None = None, **context: Any) -> None:
        available = available or []
        message = f"No correlation method registered for '{method}'"
        if available:
            message += f" (available: {', '.join(available)})"
        super().__init__(message, method=method, available=available, **context)
        self.method = method


class InvalidInputError(CorrelationError, ValueError):
    """Raised when input catalogues are malformed or cannot be compared."""


class ExternalToolError(CorrelationError, RuntimeError):
    """Raised when the external matching process cannot be run or fails.

    Parameters
    ----------
    message : str
        Human-readable error message.
    tool : str
        Name of the external tool.
    returncode : int or None
        Exit status, if the process ran at all.
    diagnostic : str
        Captured stderr (or stdout when stderr was empty).
    **context : Any
        Additional context for logging.
    """

    def __init__(
        self,
        message: str,
        tool: str = "",
        returncode: int | None = None,
        diagnostic: str = "",
        **context: Any,
    ) -> None:
        super().__init__(
            message,
            tool=tool,
            returncode=returncode,
            diagnostic=diagnostic,
            **context,
        )
        self.tool = tool
        self.returncode = returncode
        self.diagnostic = diagnostic
