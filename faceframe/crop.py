"""
Face crop region and centroid computation.

The crop starts from the tight bounding box of all landmarks and grows it
with fixed margins so the crop keeps hair and jaw context:
- left:   a quarter of the face width
- top:    an eighth of the face height
- width:  1.5x the face width
- height: 1.75x the face height

Changing the margins changes which part of the head ends up in every crop.
"""

import logging
from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .errors import DegenerateCropError
from .landmarks import validate_landmarks

logger = logging.getLogger(__name__)


CROP_LEFT_MARGIN = 1.0 / 4.0
CROP_TOP_MARGIN = 1.0 / 8.0
CROP_WIDTH_SCALE = 1.5
CROP_HEIGHT_SCALE = 1.75


@dataclass(frozen=True)
class CropRegion:
    """Axis-aligned rectangle in pixel coordinates of the reference image."""
    x: float
    y: float
    width: float
    height: float

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class Centroid:
    """Mean landmark position. x, y in pixels; z scaled by reference width."""
    x: float
    y: float
    z: float

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)


def compute_crop(
    landmarks: Union[list, NDArray[np.float64]],
    reference_width: float,
    reference_height: float
) -> Tuple[CropRegion, Centroid]:
    """
    Compute the face crop rectangle and landmark centroid.

    Args:
        landmarks: Normalized face landmarks, shape (N, 3)
        reference_width: Width of the image the crop applies to, in pixels
        reference_height: Height of the image the crop applies to, in pixels

    Returns:
        region: Expanded crop rectangle in pixel coordinates
        centroid: Mean landmark position (avg_x * W, avg_y * H, avg_z * W)

    Raises:
        InsufficientLandmarksError: If landmarks are empty or misshapen
        DegenerateCropError: If the crop has non-positive width or height

    Note:
        The top edge is computed as (1 - max_y) * H. This inverts y relative
        to MediaPipe's downward-growing normalized y; existing crops depend
        on it.
    """
    lm = validate_landmarks(landmarks, min_count=1)
    width = float(reference_width)
    height = float(reference_height)

    # Unbounded start: the first landmark always replaces both bounds, even
    # when every landmark lies outside [0, 1].
    min_x = min_y = np.inf
    max_x = max_y = -np.inf
    sum_x = sum_y = sum_z = 0.0

    for x, y, z in lm:
        if x <= min_x:
            min_x = x
        if y <= min_y:
            min_y = y
        if x >= max_x:
            max_x = x
        if y >= max_y:
            max_y = y
        sum_x += x
        sum_y += y
        sum_z += z

    count = lm.shape[0]
    avg_x, avg_y, avg_z = sum_x / count, sum_y / count, sum_z / count

    face_x = min_x * width
    face_y = (1.0 - max_y) * height
    face_w = (max_x - min_x) * width
    face_h = (max_y - min_y) * height

    region = CropRegion(
        x=float(face_x - face_w * CROP_LEFT_MARGIN),
        y=float(face_y - face_h * CROP_TOP_MARGIN),
        width=float(face_w * CROP_WIDTH_SCALE),
        height=float(face_h * CROP_HEIGHT_SCALE),
    )
    centroid = Centroid(
        x=float(avg_x * width),
        y=float(avg_y * height),
        z=float(avg_z * width),
    )

    # `not >` so NaN sizes are rejected too
    if not (region.width > 0 and region.height > 0):
        raise DegenerateCropError(
            f"Degenerate crop: width={region.width:.3f}, height={region.height:.3f}"
        )

    logger.debug(
        "Face box (%.1f, %.1f, %.1f, %.1f) -> crop (%.1f, %.1f, %.1f, %.1f)",
        face_x, face_y, face_w, face_h, *region.as_tuple()
    )

    return region, centroid


def extract_crop(
    image: NDArray,
    region: CropRegion
) -> NDArray:
    """
    Cut a crop region out of an image array.

    The region is rounded to whole pixels and clipped to the image bounds,
    since the expanded margins routinely reach past the frame edges.

    Args:
        image: Image array, shape (H, W) or (H, W, C)
        region: Crop rectangle in the image's pixel coordinates

    Returns:
        Contiguous copy of the cropped pixels

    Raises:
        DegenerateCropError: If the clipped region is empty
    """
    img_h, img_w = image.shape[:2]

    x1 = max(0, int(round(region.x)))
    y1 = max(0, int(round(region.y)))
    x2 = min(img_w, int(round(region.x + region.width)))
    y2 = min(img_h, int(round(region.y + region.height)))

    if x2 <= x1 or y2 <= y1:
        raise DegenerateCropError(
            f"Crop region {region.as_tuple()} does not overlap the "
            f"{img_w}x{img_h} image"
        )

    if (x1, y1, x2, y2) != (
        int(round(region.x)), int(round(region.y)),
        int(round(region.x + region.width)), int(round(region.y + region.height))
    ):
        logger.debug("Crop clipped to image bounds: (%d, %d)-(%d, %d)", x1, y1, x2, y2)

    return np.ascontiguousarray(image[y1:y2, x1:x2])
