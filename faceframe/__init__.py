"""
faceframe - Forward-facing head pose classification and face cropping.

This package takes MediaPipe Face Mesh landmarks, one set per video frame, and:
- Derives a head pose basis (lateral, vertical, forward axes)
- Classifies whether the face is forward-facing within a calibrated tolerance
- Computes a margin-expanded crop rectangle and centroid for forward frames

Example usage:
    from faceframe import OrientationCropEstimator, format_diagnostics

    estimator = OrientationCropEstimator()
    result = estimator.compute(landmarks, reference_size=(1080, 1920))
    print(format_diagnostics(result))
"""

__version__ = "0.1.0"

from .crop import Centroid, CropRegion, compute_crop, extract_crop
from .errors import DegenerateCropError, FaceFrameError, InsufficientLandmarksError
from .estimator import EstimatorResult, OrientationCropEstimator, format_diagnostics
from .landmarks import DEFAULT_INDICES, LandmarkIndices, LandmarkIngest
from .pipeline import Frame, FramePipeline, FrameResult
from .pose import (
    CALIBRATION_PRESETS,
    Calibration,
    PoseAngles,
    PoseBasis,
    angles_of,
    derive_basis,
    get_calibration,
    is_forward,
)

__all__ = [
    "CALIBRATION_PRESETS",
    "Calibration",
    "Centroid",
    "CropRegion",
    "DEFAULT_INDICES",
    "DegenerateCropError",
    "EstimatorResult",
    "FaceFrameError",
    "Frame",
    "FramePipeline",
    "FrameResult",
    "InsufficientLandmarksError",
    "LandmarkIndices",
    "LandmarkIngest",
    "OrientationCropEstimator",
    "PoseAngles",
    "PoseBasis",
    "angles_of",
    "compute_crop",
    "derive_basis",
    "extract_crop",
    "format_diagnostics",
    "get_calibration",
    "is_forward",
]
