"""
Exception classes for the CV pipeline.
Only DocumentUnreadableError and ConfigurationError are allowed to abort a run;
the LLM errors are recovered inside the orchestrator.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class CVTransformerError(Exception):
    """Base exception for the CV transformer"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class DocumentUnreadableError(CVTransformerError):
    """The input document could not be read or contains no text"""

    def __init__(self, message: str = "Document unreadable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class ConfigurationError(CVTransformerError):
    """Missing credential or invalid provider configuration"""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class LLMCallError(CVTransformerError):
    """Network error, non-2xx response or empty completion"""

    def __init__(self, message: str = "LLM call failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class LLMResponseError(CVTransformerError):
    """Completion arrived but is not usable JSON of the expected shape"""

    def __init__(self, message: str = "Malformed LLM response", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class FieldExtractionError(CVTransformerError):
    """All attempts for a single field or experience entry were exhausted"""

    def __init__(self, field: str, attempts: int, last_error: Optional[BaseException] = None):
        self.field = field
        self.attempts = attempts
        self.last_error = last_error
        message = f"Extraction of '{field}' failed after {attempts} attempt(s)"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message, details={"field": field, "attempts": attempts})
