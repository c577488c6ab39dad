"""
Shared synthetic landmark fixtures.

All fixtures place the 468 landmarks inside the box x in [0.2, 0.6],
y in [0.3, 0.7], with two landmarks pinned to the box corners so the tight
bounding box is known exactly.
"""

import numpy as np
import pytest

from faceframe.landmarks import (
    MEDIAPIPE_CHIN_BOTTOM,
    MEDIAPIPE_FOREHEAD_TOP,
    MEDIAPIPE_LEFT_CHEEK,
    MEDIAPIPE_RIGHT_CHEEK,
)


def make_landmarks(
    n=468,
    top=(0.4, 0.5, 0.1),
    bottom=(0.4, 0.5, -0.1),
    left_cheek=(0.5, 0.5, 0.0),
    right_cheek=(0.3, 0.5, 0.0),
    seed=42,
):
    """
    Build an (n, 3) landmark array with chosen anchor positions.

    The defaults give lateral = (0.2, 0, 0) and vertical = (0, 0, 0.2), so
    forward = lateral x vertical points along -Y: angles (90, 180, 90).
    """
    rng = np.random.RandomState(seed)
    lm = np.zeros((n, 3), dtype=np.float64)
    lm[:, 0] = rng.uniform(0.25, 0.55, n)
    lm[:, 1] = rng.uniform(0.35, 0.65, n)
    lm[:, 2] = rng.uniform(-0.05, 0.05, n)

    # Pin the bounding box corners
    lm[0] = (0.2, 0.3, 0.0)
    lm[1] = (0.6, 0.7, 0.0)

    if n > MEDIAPIPE_FOREHEAD_TOP:
        lm[MEDIAPIPE_FOREHEAD_TOP] = top
    if n > MEDIAPIPE_CHIN_BOTTOM:
        lm[MEDIAPIPE_CHIN_BOTTOM] = bottom
    if n > MEDIAPIPE_LEFT_CHEEK:
        lm[MEDIAPIPE_LEFT_CHEEK] = left_cheek
    if n > MEDIAPIPE_RIGHT_CHEEK:
        lm[MEDIAPIPE_RIGHT_CHEEK] = right_cheek
    return lm


@pytest.fixture
def forward_landmarks():
    """Landmarks whose forward axis hits the level calibration exactly."""
    return make_landmarks()


@pytest.fixture
def sideways_landmarks():
    """lateral = (0.2, 0, 0), vertical = (0, 0.2, 0): forward along +Z."""
    return make_landmarks(
        top=(0.4, 0.6, 0.0),
        bottom=(0.4, 0.4, 0.0),
    )


@pytest.fixture
def head_on_landmarks():
    """
    A realistic head-on face in image coordinates.

    Forehead above chin (smaller y), subject's left cheek on the image right.
    The vertical axis points along -Y; the forward axis along -Z.
    """
    return make_landmarks(
        top=(0.4, 0.35, 0.0),
        bottom=(0.4, 0.65, 0.0),
        left_cheek=(0.5, 0.5, 0.0),
        right_cheek=(0.3, 0.5, 0.0),
    )


@pytest.fixture
def degenerate_landmarks():
    """All four anchors coincide."""
    p = (0.4, 0.5, 0.0)
    return make_landmarks(top=p, bottom=p, left_cheek=p, right_cheek=p)


@pytest.fixture
def landmark_factory():
    """Access to make_landmarks() for tests that need custom anchors."""
    return make_landmarks
