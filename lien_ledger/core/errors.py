"""
Domain errors raised by the calculation core.

Errors are raised at the point of the offending call and never retried.
"""

from typing import Optional


class ValidationError(ValueError):
    """Raised when a required field is missing or invalid.

    Always raised before any computation proceeds, so no partial
    result ever accompanies it.
    """
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidStateError(Exception):
    """Raised on an illegal status transition (e.g. paid -> paid)."""
    def __init__(self, message: str, current: str, target: str):
        super().__init__(message)
        self.current = current
        self.target = target
