"""
Head pose basis and forward-facing classification.

The face plane is spanned by two landmark vectors:
- lateral:  right cheek -> left cheek
- vertical: chin -> top of forehead

Their cross product (lateral x vertical) is the face normal, called the
forward axis. The operand order fixes the sign of the normal, and the
calibration targets below were measured against this sign. Swapping the
operands flips every classification.

A frame is forward-facing when the classified axis makes angles with the
image X, Y and Z axes that all lie within a tolerance of a calibrated target.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .landmarks import DEFAULT_INDICES, LandmarkIndices, validate_landmarks
from .vectors import BASIS_MAGNITUDE, axis_angles_deg, scale_to_magnitude

logger = logging.getLogger(__name__)


# =============================================================================
# Data Types
# =============================================================================

@dataclass(frozen=True, eq=False)
class PoseBasis:
    """Head axes derived from four landmarks, each scaled to BASIS_MAGNITUDE."""
    lateral: NDArray[np.float64]
    vertical: NDArray[np.float64]
    forward: NDArray[np.float64]

    def axis(self, name: str) -> NDArray[np.float64]:
        """Look up an axis by name ("lateral", "vertical" or "forward")."""
        if name not in CLASSIFY_AXES:
            raise ValueError(
                f"Unknown axis: '{name}'. Supported: {', '.join(CLASSIFY_AXES)}"
            )
        return getattr(self, name)

    @property
    def is_degenerate(self) -> bool:
        """True if any axis has NaN or infinite components."""
        return not all(
            np.all(np.isfinite(v)) for v in (self.lateral, self.vertical, self.forward)
        )


@dataclass(frozen=True)
class PoseAngles:
    """Angles in degrees between a vector and the X, Y, Z unit axes."""
    x: float
    y: float
    z: float

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class Calibration:
    """Target axis angles (degrees) and a symmetric tolerance window."""
    target: Tuple[float, float, float]
    tolerance: float

    def __post_init__(self):
        # Accept lists (e.g. from YAML) but store an immutable tuple
        object.__setattr__(self, 'target', tuple(float(t) for t in self.target))
        object.__setattr__(self, 'tolerance', float(self.tolerance))
        if len(self.target) != 3:
            raise ValueError(f"Calibration target needs 3 angles, got {self.target}")
        if self.tolerance < 0:
            raise ValueError(f"Calibration tolerance must be >= 0, got {self.tolerance}")


# Two calibrations have been used historically. Which one is intended for
# production has not been settled, so both stay available by name.
#   level:  used with the continuous per-frame overlay
#   tilted: used with the one-shot crop-and-freeze capture
CALIBRATION_PRESETS: Dict[str, Calibration] = {
    "level": Calibration(target=(90.0, 180.0, 90.0), tolerance=5.0),
    "tilted": Calibration(target=(90.0, 175.0, 90.0), tolerance=3.0),
}

DEFAULT_PRESET = "level"
DEFAULT_CALIBRATION = CALIBRATION_PRESETS[DEFAULT_PRESET]

CLASSIFY_AXES = ("forward", "lateral", "vertical")


def get_calibration(preset: str) -> Calibration:
    """Look up a calibration preset by name."""
    try:
        return CALIBRATION_PRESETS[preset]
    except KeyError:
        raise ValueError(
            f"Unknown calibration preset: '{preset}'. "
            f"Supported: {', '.join(CALIBRATION_PRESETS)}"
        )


# =============================================================================
# Basis Derivation
# =============================================================================

def derive_basis(
    landmarks: Union[list, NDArray[np.float64]],
    indices: LandmarkIndices = DEFAULT_INDICES
) -> PoseBasis:
    """
    Derive the lateral, vertical and forward head axes from landmarks.

    Args:
        landmarks: Face landmarks, shape (N, 3) with N >= indices.min_count
        indices: Which landmarks are top, bottom, left and right cheek

    Returns:
        PoseBasis with each axis scaled to magnitude 100. Coincident anchor
        points give NaN components instead of an error.

    Raises:
        InsufficientLandmarksError: If the landmark set is too short
    """
    lm = validate_landmarks(landmarks, min_count=indices.min_count)

    top = lm[indices.top]
    bottom = lm[indices.bottom]
    left_cheek = lm[indices.left_cheek]
    right_cheek = lm[indices.right_cheek]

    lateral = left_cheek - right_cheek
    vertical = top - bottom
    forward = np.cross(lateral, vertical)

    basis = PoseBasis(
        lateral=scale_to_magnitude(lateral, BASIS_MAGNITUDE),
        vertical=scale_to_magnitude(vertical, BASIS_MAGNITUDE),
        forward=scale_to_magnitude(forward, BASIS_MAGNITUDE),
    )

    if basis.is_degenerate:
        logger.warning(
            "Degenerate face geometry: anchor landmarks are coincident or collinear"
        )

    return basis


# =============================================================================
# Classification
# =============================================================================

def angles_of(vector: Union[Tuple[float, float, float], NDArray[np.float64]]) -> PoseAngles:
    """
    Compute the angles between a vector and the X, Y, Z axes.

    Scale-invariant: angles_of(v) == angles_of(k * v) for any k > 0.
    """
    a = axis_angles_deg(vector)
    return PoseAngles(float(a[0]), float(a[1]), float(a[2]))


def is_about_equal(value: float, target: float, tolerance: float) -> bool:
    """Inclusive window test. Always False for NaN."""
    return target - tolerance <= value <= target + tolerance


def angles_match(angles: PoseAngles, calibration: Calibration = DEFAULT_CALIBRATION) -> bool:
    """True if every axis angle lies within the calibration window."""
    return all(
        is_about_equal(angle, target, calibration.tolerance)
        for angle, target in zip(angles.as_tuple(), calibration.target)
    )


def is_forward(
    vector: Union[Tuple[float, float, float], NDArray[np.float64]],
    calibration: Calibration = DEFAULT_CALIBRATION
) -> bool:
    """
    Classify a head axis as forward-facing.

    Args:
        vector: Axis to test, shape (3,). Any positive scale.
        calibration: Target angles and tolerance

    Returns:
        True if all three axis angles are within tolerance of the target.
        NaN components (degenerate geometry) give False.
    """
    return angles_match(angles_of(vector), calibration)
