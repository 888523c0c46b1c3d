"""
Structured error handling for the tab shelf service.

Provides the domain exception types raised by command handlers, the context
attached to each error, and a small history recorder used by the dispatcher.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from datetime import datetime
from enum import Enum


UNKNOWN_ERROR_MESSAGE = "Unknown error"


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class ErrorContext:
    """
    Context information about an error.

    Captures the command that failed and the identifiers it was working on.
    """

    error_type: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    command: Optional[str] = None
    group_id: Optional[str] = None
    tab_id: Optional[Any] = None

    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'error_type': self.error_type,
            'message': self.message,
            'timestamp': self.timestamp.isoformat(),
            'command': self.command,
            'group_id': self.group_id,
            'tab_id': self.tab_id,
            'metadata': self.metadata
        }


class ShelfError(Exception):
    """
    Base exception for all shelf errors.

    The message is always human-readable; it is what callers see in the
    ``{ok: False, message}`` envelope.
    """

    severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        **kwargs
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext(
            error_type=self.__class__.__name__,
            message=message
        )

        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)


class NotFoundError(ShelfError):
    """A group, tab or window lookup missed."""
    severity = ErrorSeverity.LOW


class ForbiddenError(ShelfError):
    """Operation against a protected system or synthetic group."""
    severity = ErrorSeverity.LOW


class EmptyError(ShelfError):
    """Nothing eligible to capture."""
    severity = ErrorSeverity.LOW


class ExternalFailureError(ShelfError):
    """The tab host rejected an operation (e.g. the tab is already closed)."""
    severity = ErrorSeverity.HIGH


def error_message(error: BaseException, fallback: str = UNKNOWN_ERROR_MESSAGE) -> str:
    """Human-readable message for any exception, never empty."""
    if isinstance(error, ShelfError) and error.message:
        return error.message
    text = str(error).strip()
    return text or fallback


@dataclass
class ErrorHandler:
    """
    Keeps a bounded history of command failures.
    """

    max_history: int = 200
    errors: List[ErrorContext] = field(default_factory=list)

    def record(self, error: Exception, command: Optional[str] = None) -> ErrorContext:
        """
        Record an error and return its context.

        Args:
            error: The exception that occurred
            command: Name of the command that raised it

        Returns:
            ErrorContext stored in the history
        """
        if isinstance(error, ShelfError):
            context = error.context
        else:
            context = ErrorContext(
                error_type=type(error).__name__,
                message=error_message(error)
            )
        if command and not context.command:
            context.command = command

        self.errors.append(context)
        if len(self.errors) > self.max_history:
            del self.errors[0]
        return context

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of all errors."""
        error_counts = {}
        for error in self.errors:
            error_type = error.error_type
            error_counts[error_type] = error_counts.get(error_type, 0) + 1

        return {
            'total_errors': len(self.errors),
            'error_counts': error_counts,
            'recent_errors': [e.to_dict() for e in self.errors[-5:]]
        }

    def clear_errors(self) -> None:
        """Clear error history."""
        self.errors.clear()
