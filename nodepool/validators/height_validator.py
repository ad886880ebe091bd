"""Block height validation for RPC arguments."""

from __future__ import annotations

from nodepool.middleware.error_handler import ValidationError


def validate_height(height: object) -> int:
    """Return *height* if it is a non-negative integer, else raise ``ValidationError``.

    ``bool`` is rejected even though it subclasses ``int``.
    """
    if isinstance(height, bool) or not isinstance(height, int):
        raise ValidationError(
            f"Block height must be an integer, got {type(height).__name__}",
            height=repr(height),
        )
    if height < 0:
        raise ValidationError(
            f"Block height must be non-negative, got {height}",
            height=height,
        )
    return height
