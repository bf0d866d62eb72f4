"""
Error handling for the lebar status generator.

Every failure the engine knows how to report carries an ErrorCode so the
log line names the failing stage (interpreter lookup, execution, template
rendering, click parsing, configuration).
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """
    Error codes for lebar.

    - 100-199: Process execution errors
    - 200-299: Rendering errors
    - 300-399: Click event errors
    - 400-499: Configuration errors
    """

    # Process execution errors (100-199)
    INTERPRETER_MISSING = 100
    INTERPRETER_NOT_FOUND = 101
    EXECUTION_FAILED = 102
    TIMEOUT = 103

    # Rendering errors (200-299)
    FORMAT_ERROR = 200

    # Click event errors (300-399)
    EVENT_PARSE_ERROR = 300

    # Configuration errors (400-499)
    CONFIG_ERROR = 400


class LebarError(Exception):
    """Base exception for all errors raised by lebar."""

    code: ErrorCode = ErrorCode.EXECUTION_FAILED

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        code: Optional[ErrorCode] = None,
    ):
        """
        Initialize error.

        Args:
            message: Human-readable error message
            context: Additional context for debugging (block name, argv, ...)
            code: Override for the class-level error code
        """
        if code is not None:
            self.code = code
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to a dictionary for structured logging.

        Returns:
            Dictionary with code name, message and context
        """
        result: Dict[str, Any] = {
            "code": self.code.name,
            "message": self.message,
        }
        if self.context:
            result["context"] = self.context
        return result

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"


class InterpreterMissingError(LebarError):
    """No interpreter (or an empty command) was given for an invocation."""

    code = ErrorCode.INTERPRETER_MISSING


class InterpreterNotFoundError(LebarError):
    """The launcher could not be resolved on PATH."""

    code = ErrorCode.INTERPRETER_NOT_FOUND


class ExecutionFailedError(LebarError):
    """The child exited non-zero or could not be spawned."""

    code = ErrorCode.EXECUTION_FAILED

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message, context)
        self.returncode = returncode
        self.stderr = stderr


class ExecutionTimeoutError(LebarError):
    """The child did not finish before its deadline and was killed."""

    code = ErrorCode.TIMEOUT


class FormatError(LebarError):
    """A block's output template failed to compile or render."""

    code = ErrorCode.FORMAT_ERROR


class EventParseError(LebarError):
    """A click event record from the host could not be parsed."""

    code = ErrorCode.EVENT_PARSE_ERROR


class ConfigError(LebarError):
    """The configuration file is unreadable or invalid."""

    code = ErrorCode.CONFIG_ERROR
