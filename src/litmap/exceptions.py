"""Custom exceptions for literature map operations.

These are validation conditions rejected at the UI boundary. Runtime
failures (remote writes, stale references) never raise; they are logged.
"""


class LitmapError(ValueError):
    """Base exception for literature map operations."""
    pass


class EmptySelectionError(LitmapError):
    """Raised when an insight is requested from zero concepts."""
    def __init__(self):
        super().__init__("Select at least one concept before creating an insight")


class InvalidEdgeTypeError(LitmapError):
    """Raised when a connection uses a label outside the vocabulary."""
    def __init__(self, edge_type: str):
        self.edge_type = edge_type
        super().__init__(f"Unknown relationship type: {edge_type!r}")


class InvalidTransitionError(LitmapError):
    """Raised when an interaction is not allowed in the current state."""
    def __init__(self, state: str, action: str):
        self.state = state
        self.action = action
        super().__init__(f"Cannot {action} while {state}")
