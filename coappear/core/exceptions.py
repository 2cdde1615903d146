"""
Coappear Exception Hierarchy.

This module defines the exception hierarchy for the coappear noise detector,
providing clear categorization of errors and standardized error handling
across the pipeline stages.

Exception Severity Levels:
    - FATAL: Stop all processing immediately
    - CRITICAL: Stop the current run, no partial output is produced
    - RECOVERABLE: Log error and continue (used by observers and loaders)
    - WARNING: Log warning, processing continues

Every detection failure is fatal to the run: the pipeline either produces a
complete, consistent result or raises one of the stage errors below.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorSeverity(Enum):
    """
    Classify error severity for handling decisions.

    Attributes:
        FATAL: Unrecoverable error, stop all processing
        CRITICAL: Run-level error, abort the current detection run
        RECOVERABLE: Non-fatal error, log and continue
        WARNING: Non-critical issue, log and continue
    """
    FATAL = "fatal"
    CRITICAL = "critical"
    RECOVERABLE = "recoverable"
    WARNING = "warning"


class CoappearException(Exception):
    """
    Base exception for all coappear errors with enhanced context.

    Provides:
    - Severity classification for handling decisions
    - Structured details dictionary for logging/reporting
    - Original exception preservation for debugging
    - Serialization support for JSON/dict output

    Attributes:
        message (str): Human-readable error message
        severity (ErrorSeverity): Error severity level
        details (Dict[str, Any]): Additional context (column, stage, etc.)
        original_exception (Optional[Exception]): Original exception if wrapping

    Example:
        >>> try:
        ...     codes = bin_column(values, 4)
        ... except ValueError as e:
        ...     raise CoappearException(
        ...         "Binning failed",
        ...         severity=ErrorSeverity.CRITICAL,
        ...         details={'column': 'age'},
        ...         original_exception=e
        ...     )
    """

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.RECOVERABLE,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        """
        Initialize coappear exception.

        Args:
            message: Human-readable error description
            severity: Error severity level (default: RECOVERABLE)
            details: Additional context dictionary
            original_exception: Original exception if this wraps another error
        """
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.details = details or {}
        self.original_exception = original_exception

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for logging/reporting.

        Returns:
            Dictionary containing exception details suitable for JSON serialization
        """
        return {
            'type': self.__class__.__name__,
            'message': self.message,
            'severity': self.severity.value,
            'details': self.details,
            'original_error': str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Configuration Errors (Fatal)
# ============================================================================

class ConfigError(CoappearException):
    """
    Configuration errors (fatal - rejected before any data is processed).

    Raised when:
    - Configuration file not found or too large
    - Invalid YAML syntax
    - A threshold lies outside (0, 1]
    - An option has an unknown value

    Attributes:
        field (Optional[str]): Specific config field that caused error
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message,
            severity=ErrorSeverity.FATAL,
            details={'field': field} if field else {}
        )
        self.field = field


class ConfigValidationError(ConfigError):
    """
    Configuration value failed validation.

    Example:
        >>> raise ConfigValidationError(
        ...     "Coappearance threshold must be > 0 and <= 1",
        ...     field="detection.coappearance_threshold",
        ...     expected="(0, 1]",
        ...     actual=1.5
        ... )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None
    ):
        super().__init__(message, field=field)
        if expected is not None:
            self.details['expected'] = expected
        if actual is not None:
            self.details['actual'] = actual


# ============================================================================
# Data Loading Errors (Critical)
# ============================================================================

class DataLoadError(CoappearException):
    """
    Dataset could not be read or written.

    Attributes:
        file_path (Optional[str]): Path of the dataset involved
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            details={'file_path': file_path} if file_path else {},
            original_exception=original_exception
        )
        self.file_path = file_path


class UnsupportedFormatError(DataLoadError):
    """Dataset format is not CSV or Parquet."""

    def __init__(self, message: str, file_path: Optional[str] = None, file_format: Optional[str] = None):
        super().__init__(message, file_path=file_path)
        self.details['format'] = file_format
        self.file_format = file_format


# ============================================================================
# Detection Stage Errors (Critical)
# ============================================================================

class DetectionStageError(CoappearException):
    """
    A pipeline stage failed; the whole run is aborted.

    The stage name is one of ``generalization``, ``coappearance``,
    ``scoring`` or ``assembly`` and is included in the rendered message so
    the terminating error always says where the run stopped.

    Attributes:
        stage (str): Pipeline stage that failed
    """

    def __init__(
        self,
        message: str,
        stage: str,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        stage_details = {'stage': stage}
        stage_details.update(details or {})
        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            details=stage_details,
            original_exception=original_exception
        )
        self.stage = stage

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


class GeneralizationError(DetectionStageError):
    """
    A column could not be discretized or converted to categorical codes.

    Attributes:
        column (Optional[str]): Column that failed to generalize
    """

    def __init__(
        self,
        message: str,
        column: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message,
            stage='generalization',
            details={'column': column} if column is not None else {},
            original_exception=original_exception
        )
        self.column = column


class DimensionMismatchError(DetectionStageError):
    """
    Internal invariant violation: Q, the domain-size table, the CAM, or a
    value code disagrees with the dataset being processed.
    """

    def __init__(self, message: str, stage: str, expected: Any = None, actual: Any = None):
        details = {}
        if expected is not None:
            details['expected'] = expected
        if actual is not None:
            details['actual'] = actual
        super().__init__(message, stage=stage, details=details)


class ResourceLimitError(DetectionStageError):
    """
    Co-appearance matrix would exceed the configured cell budget.

    Raised before any allocation happens.
    """

    def __init__(self, message: str, estimated_cells: int, max_cells: int):
        super().__init__(
            message,
            stage='coappearance',
            details={'estimated_cells': estimated_cells, 'max_cells': max_cells}
        )
        self.estimated_cells = estimated_cells
        self.max_cells = max_cells


class AssemblyError(DetectionStageError):
    """Final output dataset could not be assembled."""

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(message, stage='assembly', original_exception=original_exception)
