"""
Exceptions raised by faceframe.

Both concrete errors subclass ValueError so callers that already guard
input validation with `except ValueError` keep working.
"""


class FaceFrameError(Exception):
    """Base class for faceframe errors."""


class InsufficientLandmarksError(FaceFrameError, ValueError):
    """Landmark set is malformed or too short to index the anchor points."""


class DegenerateCropError(FaceFrameError, ValueError):
    """Computed crop region has no area."""
