"""
Exceptions raised by the Invoice Readiness Analyzer.

Rule failures are never raised; they are returned as findings. Only malformed
input that the engines cannot process at all ends up here.
"""


class ReadinessError(Exception):
    """Base class for all analyzer errors."""


class InputError(ReadinessError, ValueError):
    """The row list handed to the core is empty or not a list of rows."""


class DataParseError(ReadinessError, ValueError):
    """Raw CSV/JSON content could not be turned into rows."""

    def __init__(self, message: str):
        super().__init__(f"Data parsing failed: {message}")
        self.reason = message
