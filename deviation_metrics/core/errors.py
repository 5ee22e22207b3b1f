"""
Error types raised by the deviation core.
"""


class InvalidArgumentError(ValueError):
    """Raised for caller contract violations (bad grid size, malformed correspondences)."""
