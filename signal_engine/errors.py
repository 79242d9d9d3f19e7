from __future__ import annotations


class InsufficientDataError(ValueError):
    """Raised when a price series is too short for the requested window."""

    def __init__(self, required: int, actual: int, what: str = "calculation") -> None:
        self.required = required
        self.actual = actual
        super().__init__(
            f"Need at least {required} data points for {what}, got {actual} "
            f"({required - actual} short)"
        )
