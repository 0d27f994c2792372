"""Output formatting for the terminal."""

from .terminal import display_plan, display_result

__all__ = [
    "display_plan",
    "display_result",
]
