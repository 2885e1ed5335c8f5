"""
Error taxonomy and retry helpers for the orchestration run.

This module provides:
- Custom exception classes for the pre-flight, per-record, per-chain and
  per-file failure kinds
- A retry decorator for transient scheduler failures
"""

import logging
import time
from functools import wraps
from pathlib import Path
from typing import Callable, Dict, Optional, Union

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, stage: Optional[str] = None, details: Optional[Dict] = None):
        """Initialize pipeline error.

        Parameters
        ----------
        message : str
            Error message
        stage : str, optional
            Stage where error occurred
        details : dict, optional
            Additional error details
        """
        super().__init__(message)
        self.stage = stage
        self.details = details or {}


class ConfigError(PipelineError):
    """Raised when required configuration is missing or unreadable.

    Always fatal and always raised before any job is submitted.
    """

    def __init__(self, message: str, missing_keys: Optional[list] = None):
        """Initialize configuration error."""
        super().__init__(message, details={"missing_keys": list(missing_keys or [])})
        self.missing_keys = list(missing_keys or [])


class MalformedRecord(PipelineError):
    """Raised when a sample list row lacks a required field."""

    def __init__(self, message: str, line_number: int, line: str = ""):
        """Initialize malformed record error."""
        super().__init__(
            f"Line {line_number}: {message}",
            details={"line_number": line_number, "line": line},
        )
        self.line_number = line_number
        self.line = line


class SubmissionError(PipelineError):
    """Raised when the scheduler rejects a job submission."""

    def __init__(self, stage: str, reason: str, sample_id: Optional[str] = None):
        """Initialize submission error."""
        prefix = f"{sample_id}/{stage}" if sample_id else stage
        super().__init__(
            f"Submission of '{prefix}' failed: {reason}",
            stage,
            {"reason": reason, "sample_id": sample_id},
        )
        self.reason = reason
        self.sample_id = sample_id


class MissingOutput(PipelineError):
    """Raised when an expected per-sample result file does not exist yet."""

    def __init__(self, path: Union[str, Path], sample_id: str, stage: Optional[str] = None):
        """Initialize missing output error."""
        super().__init__(
            f"Expected output for sample '{sample_id}' not found: {path}",
            stage,
            {"path": str(path), "sample_id": sample_id},
        )
        self.path = Path(path)
        self.sample_id = sample_id


def retry_on_failure(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple = (Exception,),
    logger: Optional[logging.Logger] = None,
) -> Callable:
    """Decorator to retry function on failure with exponential backoff.

    Parameters
    ----------
    max_attempts : int
        Maximum number of attempts
    delay : float
        Initial delay between attempts in seconds
    backoff : float
        Backoff multiplier for delay
    exceptions : tuple
        Tuple of exceptions to catch
    logger : logging.Logger, optional
        Logger for retry messages

    Returns
    -------
    Callable
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            _logger = logger or logging.getLogger(func.__module__)
            current_delay = delay

            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts - 1:
                        _logger.error(f"Failed after {max_attempts} attempts: {e}")
                        raise

                    _logger.warning(
                        f"Attempt {attempt + 1} failed: {e}. "
                        f"Retrying in {current_delay:.1f} seconds..."
                    )
                    time.sleep(current_delay)
                    current_delay *= backoff

        return wrapper

    return decorator
