"""
MediaPipe Face Mesh landmark indices and ingestion.

This module provides:
- The four anatomical anchor indices used for head pose estimation
- Validation of per-frame landmark arrays
- LandmarkIngest: Load landmarks from raw arrays or JSON files

MediaPipe Face Mesh produces 468 landmarks (478 with iris refinement), each
normalized as (x / image_width, y / image_height, relative depth). The pose
estimator only reads four of them, but the crop computation scans all.

Left/right naming follows the subject's anatomy. If the capture pipeline has
already mirrored the image horizontally (front cameras usually do), the two
cheek points swap sides in the image and the lateral axis flips with them.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .errors import InsufficientLandmarksError

logger = logging.getLogger(__name__)


# =============================================================================
# Anchor Indices
# =============================================================================
# MediaPipe Face Mesh vertex numbering. These are tied to one model's layout;
# a model with a different numbering needs its own LandmarkIndices.

MEDIAPIPE_FOREHEAD_TOP = 10
MEDIAPIPE_CHIN_BOTTOM = 152
MEDIAPIPE_LEFT_CHEEK = 425
MEDIAPIPE_RIGHT_CHEEK = 205

MEDIAPIPE_NUM_LANDMARKS = 468
MEDIAPIPE_NUM_LANDMARKS_REFINED = 478


@dataclass(frozen=True)
class LandmarkIndices:
    """Indices of the four landmarks that span the face plane."""
    top: int = MEDIAPIPE_FOREHEAD_TOP
    bottom: int = MEDIAPIPE_CHIN_BOTTOM
    left_cheek: int = MEDIAPIPE_LEFT_CHEEK
    right_cheek: int = MEDIAPIPE_RIGHT_CHEEK

    def __post_init__(self):
        for name, value in self.as_dict().items():
            if value < 0:
                raise ValueError(f"Landmark index '{name}' must be >= 0, got {value}")

    @property
    def min_count(self) -> int:
        """Smallest landmark count that can be indexed by all four anchors."""
        return max(self.top, self.bottom, self.left_cheek, self.right_cheek) + 1

    def as_dict(self) -> dict:
        return {
            'top': self.top,
            'bottom': self.bottom,
            'left_cheek': self.left_cheek,
            'right_cheek': self.right_cheek,
        }


DEFAULT_INDICES = LandmarkIndices()


def validate_landmarks(
    landmarks: Union[List[List[float]], NDArray[np.float64]],
    min_count: int = 1
) -> NDArray[np.float64]:
    """
    Convert landmarks to an (N, 3) float64 array and check its size.

    The input is never modified; a new array is returned when a conversion
    is needed.

    Args:
        landmarks: Landmarks as an (N, 3) array or list of [x, y, z]
        min_count: Minimum number of landmarks required

    Returns:
        Landmarks as an (N, 3) float64 array

    Raises:
        InsufficientLandmarksError: If the shape is wrong, values are not finite
            or N < min_count
    """
    try:
        lm = np.asarray(landmarks, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InsufficientLandmarksError(f"Malformed landmarks: {e}") from e

    if lm.ndim != 2 or lm.shape[1] != 3:
        raise InsufficientLandmarksError(
            f"Expected landmarks shape (N, 3), got {lm.shape}"
        )

    if not np.all(np.isfinite(lm)):
        raise InsufficientLandmarksError("Landmarks contain NaN or infinite values")

    n = lm.shape[0]
    if n < min_count:
        raise InsufficientLandmarksError(
            f"Insufficient landmarks: need at least {min_count} points, got {n}"
        )

    return lm


class LandmarkIngest:
    """
    Load per-frame face landmarks from external sources.

    Supported input formats:
    - "mediapipe": MediaPipe Face Mesh (468 or 478 normalized landmarks)

    Usage:
        # From raw MediaPipe landmarks (list of [x, y, z]):
        landmarks = LandmarkIngest.from_mediapipe(mp_landmarks)

        # From a JSON file written by a landmark extraction tool:
        landmarks, image_size = LandmarkIngest.from_json("frame_0001.json")
    """

    @staticmethod
    def from_mediapipe(
        landmarks: Union[List[List[float]], NDArray[np.float64]],
        indices: LandmarkIndices = DEFAULT_INDICES,
    ) -> NDArray[np.float64]:
        """
        Validate MediaPipe Face Mesh landmarks for pose estimation.

        Coordinates are kept normalized; the crop computation converts to
        pixels against a reference image size later.

        Args:
            landmarks: MediaPipe face landmarks, shape (N, 3)
            indices: Anchor indices the landmarks must be able to serve

        Returns:
            Landmarks as an (N, 3) float64 array

        Raises:
            InsufficientLandmarksError: If shape is wrong or too few points
        """
        lm = validate_landmarks(landmarks, min_count=indices.min_count)
        if lm.shape[0] not in (MEDIAPIPE_NUM_LANDMARKS, MEDIAPIPE_NUM_LANDMARKS_REFINED):
            logger.debug(
                "Unusual MediaPipe landmark count %d (expected %d or %d)",
                lm.shape[0], MEDIAPIPE_NUM_LANDMARKS, MEDIAPIPE_NUM_LANDMARKS_REFINED
            )
        return lm

    @staticmethod
    def from_json(
        filepath: Union[str, Path],
        indices: LandmarkIndices = DEFAULT_INDICES,
    ) -> Tuple[NDArray[np.float64], Optional[Tuple[int, int]]]:
        """
        Load face landmarks for one frame from a JSON file.

        Supported JSON formats:
        - Single face: {"source": "mediapipe", "image_size": [w, h],
                        "landmarks": [[x, y, z], ...]}
        - Multi face:  {"source": "mediapipe", "image_size": [w, h],
                        "faces": [[[x, y, z], ...], ...]}
          Only the first face is used.

        Args:
            filepath: Path to JSON file.
            indices: Anchor indices the landmarks must be able to serve

        Returns:
            landmarks: (N, 3) float64 array
            image_size: (width, height) of the source image, or None if absent

        Raises:
            ValueError: If format is unrecognized or a field is missing.
            InsufficientLandmarksError: If the frame holds no usable face.
            FileNotFoundError: If file does not exist.
        """
        filepath = Path(filepath)
        with open(filepath, 'r') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(
                f"Expected a JSON object in {filepath}, got {type(data).__name__}"
            )

        source = str(data.get("source", "")).lower()
        if source != "mediapipe":
            raise ValueError(
                f"Unsupported face landmark source: '{source}' in {filepath}. "
                f"Supported: 'mediapipe'"
            )

        if "faces" in data:
            faces = data["faces"]
            if not isinstance(faces, list):
                raise ValueError(f"'faces' must be a list in {filepath}")
            if not faces:
                raise InsufficientLandmarksError(f"No faces in {filepath}")
            if len(faces) > 1:
                logger.debug("%d faces in %s, using the first", len(faces), filepath)
            raw_landmarks = faces[0]
        else:
            raw_landmarks = data.get("landmarks")
            if raw_landmarks is None:
                raise ValueError(
                    f"MediaPipe JSON missing 'landmarks' field in {filepath}"
                )

        if not isinstance(raw_landmarks, list):
            raise InsufficientLandmarksError(
                f"Landmarks must be a list of [x, y, z], got "
                f"{type(raw_landmarks).__name__} in {filepath}"
            )

        image_size = data.get("image_size")
        if image_size is not None:
            if not isinstance(image_size, list) or len(image_size) != 2:
                raise ValueError(
                    f"'image_size' must be [width, height], got {image_size} in {filepath}"
                )
            try:
                image_size = (int(image_size[0]), int(image_size[1]))
            except (TypeError, ValueError):
                raise ValueError(
                    f"'image_size' must hold two integers, got {image_size} in {filepath}"
                )

        logger.debug(
            "Loading MediaPipe JSON from %s: %d landmarks, image_size=%s",
            filepath, len(raw_landmarks), image_size
        )
        landmarks = LandmarkIngest.from_mediapipe(raw_landmarks, indices=indices)
        return landmarks, image_size
