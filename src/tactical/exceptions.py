"""Custom exceptions for the tactical panel.

Nothing here crosses a component boundary: each layer raises and
catches its own errors and degrades to a safe fallback.
"""


class PanelError(Exception):
    """Base exception for all panel errors."""


class SourceFetchError(PanelError):
    """Raised when a single indicator source fails, times out, or returns non-JSON."""


class StateCorruptError(PanelError):
    """Raised when a persisted state value cannot be decoded."""
