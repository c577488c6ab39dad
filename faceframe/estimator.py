"""
Per-frame orientation and crop estimator.

OrientationCropEstimator ties together pose basis derivation, forward-facing
classification and crop computation for one frame of landmarks. It holds only
immutable settings, so one instance can serve any number of frames and
threads.

Example:
    estimator = OrientationCropEstimator(calibration=get_calibration("tilted"))
    result = estimator.compute(landmarks, reference_size=(1080, 1920))
    print(format_diagnostics(result))
    if result.crop is not None:
        face = extract_crop(image, result.crop)
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .crop import Centroid, CropRegion, compute_crop
from .landmarks import DEFAULT_INDICES, LandmarkIndices, validate_landmarks
from .pose import (
    CLASSIFY_AXES,
    DEFAULT_CALIBRATION,
    Calibration,
    PoseAngles,
    PoseBasis,
    angles_match,
    angles_of,
    derive_basis,
)

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


FORWARD_MARKER = "FORWARD!!"


@dataclass(frozen=True, eq=False)
class EstimatorResult:
    """Everything the estimator derives from one frame."""
    basis: PoseBasis
    angles: PoseAngles
    is_forward: bool
    crop: Optional[CropRegion] = None
    centroid: Optional[Centroid] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable form. NaN and infinite components become None."""
        def _clean(values):
            return [float(v) if math.isfinite(v) else None for v in values]

        return {
            'basis': {
                'forward': _clean(self.basis.forward),
                'lateral': _clean(self.basis.lateral),
                'vertical': _clean(self.basis.vertical),
            },
            'angles': _clean(self.angles.as_tuple()),
            'is_forward': self.is_forward,
            'crop': _clean(self.crop.as_tuple()) if self.crop is not None else None,
            'centroid': _clean(self.centroid.as_tuple()) if self.centroid is not None else None,
        }


class OrientationCropEstimator:
    """
    Classify head pose from face landmarks and compute the face crop.

    Args:
        indices: Anchor landmark indices (default: MediaPipe 10/152/425/205)
        calibration: Forward-facing target angles and tolerance
        classify_axis: Which basis axis the calibration is applied to.
            "forward" (the face normal) by default; "vertical" tests the
            chin-to-forehead axis, as the mobile capture app does.
    """

    def __init__(
        self,
        indices: LandmarkIndices = DEFAULT_INDICES,
        calibration: Calibration = DEFAULT_CALIBRATION,
        classify_axis: str = "forward"
    ):
        if classify_axis not in CLASSIFY_AXES:
            raise ValueError(
                f"Unknown classify axis: '{classify_axis}'. "
                f"Supported: {', '.join(CLASSIFY_AXES)}"
            )
        self.indices = indices
        self.calibration = calibration
        self.classify_axis = classify_axis

    @classmethod
    def from_config(cls, config: "Config") -> "OrientationCropEstimator":
        """Create an estimator from the landmark and classifier config sections."""
        return cls(
            indices=config.landmarks.to_indices(),
            calibration=config.classifier.to_calibration(),
            classify_axis=config.classifier.axis,
        )

    def compute(
        self,
        landmarks: Union[list, NDArray[np.float64]],
        reference_size: Optional[Tuple[int, int]] = None
    ) -> EstimatorResult:
        """
        Run the full per-frame estimate.

        Args:
            landmarks: Normalized face landmarks, shape (N, 3)
            reference_size: (width, height) of the image crops apply to.
                If None, no crop is computed even for forward-facing frames.

        Returns:
            EstimatorResult. crop and centroid are set only for forward-facing
            frames with a reference size.

        Raises:
            InsufficientLandmarksError: If the landmark set is too short
            DegenerateCropError: If a forward-facing frame yields an empty crop
        """
        lm = validate_landmarks(landmarks, min_count=self.indices.min_count)

        basis = derive_basis(lm, self.indices)
        angles = angles_of(basis.axis(self.classify_axis))
        forward = angles_match(angles, self.calibration)

        logger.debug(
            "Pose angles (%s axis) = (%.1f, %.1f, %.1f), forward=%s",
            self.classify_axis, angles.x, angles.y, angles.z, forward
        )

        crop = centroid = None
        if forward and reference_size is not None:
            crop, centroid = compute_crop(lm, reference_size[0], reference_size[1])

        return EstimatorResult(
            basis=basis,
            angles=angles,
            is_forward=forward,
            crop=crop,
            centroid=centroid,
        )

    def __repr__(self) -> str:
        return (
            f"OrientationCropEstimator(indices={self.indices}, "
            f"calibration={self.calibration}, classify_axis='{self.classify_axis}')"
        )


def _fmt(values) -> str:
    return "(" + ", ".join(f"{v:.0f}" for v in values) + ")"


def format_diagnostics(result: EstimatorResult) -> str:
    """
    Human-readable report of one frame.

    Rows are the forward (x), lateral (y) and vertical (z) axes, then the
    angle triple, each rounded to whole numbers. A forward-facing frame ends
    with the FORWARD!! marker.
    """
    lines = [
        f"x = {_fmt(result.basis.forward)}",
        f"y = {_fmt(result.basis.lateral)}",
        f"z = {_fmt(result.basis.vertical)}",
        f"angle = {_fmt(result.angles.as_tuple())}",
        "",
        FORWARD_MARKER if result.is_forward else "",
    ]
    return "\n".join(lines)
