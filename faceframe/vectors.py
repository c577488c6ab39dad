"""
Coordinate system definitions and vector helpers.

This module documents the coordinate system the landmark pipeline delivers
and provides the small set of vector operations used by pose estimation.

Image Coordinate System (MediaPipe normalized landmarks):
    Origin: Top-left corner of the source image
    +X: Right, normalized to image width [0, 1]
    +Y: Down, normalized to image height [0, 1]
    +Z: Relative depth, roughly the same scale as X
        (smaller values are closer to the camera)

No conversion to a Y-up frame happens anywhere in faceframe. Pose angles are
measured directly against the image axes above.
"""

import numpy as np
from numpy.typing import NDArray


# Display magnitude for basis vectors: roughly "percent of unit length".
# Angle computations divide it out, so any positive value gives identical angles.
BASIS_MAGNITUDE = 100.0


class ImageCoordinates:
    """
    Documentation of the landmark coordinate system.

    - +X: Right (image columns)
    - +Y: Down (image rows)
    - +Z: Depth away from the camera

    A head-on face therefore has its chin-to-forehead axis pointing toward -Y
    and its outward normal pointing toward -Z.
    """

    X_AXIS = np.array([1.0, 0.0, 0.0])
    Y_AXIS = np.array([0.0, 1.0, 0.0])
    Z_AXIS = np.array([0.0, 0.0, 1.0])


def as_vector(values) -> NDArray[np.float64]:
    """Convert a 3-sequence to a float64 vector, validating its shape."""
    v = np.asarray(values, dtype=np.float64)
    if v.shape != (3,):
        raise ValueError(f"Expected a 3D vector, got shape {v.shape}")
    return v


def scale_to_magnitude(
    vector: NDArray[np.float64],
    magnitude: float = BASIS_MAGNITUDE
) -> NDArray[np.float64]:
    """
    Scale a vector so its Euclidean norm equals `magnitude`.

    Args:
        vector: Vector to scale, shape (3,)
        magnitude: Target length (default: 100)

    Returns:
        Scaled copy of the vector

    Note:
        A zero-length vector has no direction. The division is carried out
        anyway and yields NaN components, which downstream classification
        treats as "not forward-facing".
    """
    v = as_vector(vector)
    size = np.sqrt(np.sum(v ** 2))
    with np.errstate(divide='ignore', invalid='ignore'):
        return v * magnitude / size


def axis_angles_deg(vector: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Angle in degrees between a vector and each Cartesian unit axis.

    angle_i = acos(v[i] / |v|)

    Depends only on v[i] / |v|, so any positive scaling of the input gives
    the same angles. A zero vector gives NaN for all three.

    Args:
        vector: Vector, shape (3,)

    Returns:
        Array of [angle_x, angle_y, angle_z] in degrees, each in [0, 180]
    """
    v = as_vector(vector)
    size = np.sqrt(np.sum(v ** 2))
    with np.errstate(divide='ignore', invalid='ignore'):
        cosines = v / size
    # Guard acos against rounding just outside [-1, 1]; NaN passes through clip
    cosines = np.clip(cosines, -1.0, 1.0)
    return np.degrees(np.arccos(cosines))
