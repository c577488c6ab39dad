"""
Tests for vector helpers.
"""

import numpy as np
import pytest

from faceframe import vectors


class TestImageCoordinates:
    """Test coordinate system definitions."""

    def test_axes_are_unit_vectors(self):
        """Coordinate axes should be unit length."""
        for axis in (vectors.ImageCoordinates.X_AXIS,
                     vectors.ImageCoordinates.Y_AXIS,
                     vectors.ImageCoordinates.Z_AXIS):
            assert np.allclose(np.linalg.norm(axis), 1.0)

    def test_axes_are_right_handed(self):
        """X cross Y should give Z."""
        assert np.allclose(
            np.cross(vectors.ImageCoordinates.X_AXIS, vectors.ImageCoordinates.Y_AXIS),
            vectors.ImageCoordinates.Z_AXIS
        )


class TestAsVector:
    """Test vector validation."""

    def test_accepts_tuple(self):
        v = vectors.as_vector((1, 2, 3))
        assert v.dtype == np.float64
        assert np.allclose(v, [1, 2, 3])

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError, match="3D vector"):
            vectors.as_vector((1, 2))


class TestScaleToMagnitude:
    """Test scaled normalization."""

    def test_default_magnitude_is_100(self):
        """Result should have length 100 by default."""
        v = vectors.scale_to_magnitude(np.array([3.0, 4.0, 0.0]))
        assert np.allclose(v, [60.0, 80.0, 0.0])
        assert np.isclose(np.linalg.norm(v), 100.0)

    def test_custom_magnitude(self):
        v = vectors.scale_to_magnitude(np.array([0.0, 0.0, -2.0]), magnitude=1.0)
        assert np.allclose(v, [0.0, 0.0, -1.0])

    def test_preserves_direction(self):
        """Scaling should not change direction."""
        original = np.array([0.1, -0.7, 0.3])
        scaled = vectors.scale_to_magnitude(original)
        cos = np.dot(original, scaled) / (np.linalg.norm(original) * np.linalg.norm(scaled))
        assert np.isclose(cos, 1.0)

    def test_zero_vector_gives_nan(self):
        """A zero vector has no direction: components become NaN, no exception."""
        v = vectors.scale_to_magnitude(np.zeros(3))
        assert np.all(np.isnan(v))

    def test_does_not_modify_input(self):
        original = np.array([1.0, 2.0, 2.0])
        vectors.scale_to_magnitude(original)
        assert np.allclose(original, [1.0, 2.0, 2.0])


class TestAxisAngles:
    """Test angle-to-axis computation."""

    def test_unit_axes(self):
        """Each unit axis is 0 degrees from itself and 90 from the others."""
        assert np.allclose(vectors.axis_angles_deg([1, 0, 0]), [0, 90, 90])
        assert np.allclose(vectors.axis_angles_deg([0, 1, 0]), [90, 0, 90])
        assert np.allclose(vectors.axis_angles_deg([0, 0, 1]), [90, 90, 0])

    def test_negative_axis(self):
        """Pointing along -Y gives 180 degrees to Y."""
        assert np.allclose(vectors.axis_angles_deg([0, -1, 0]), [90, 180, 90])

    def test_diagonal(self):
        """The XY diagonal is 45 degrees from X and Y."""
        assert np.allclose(vectors.axis_angles_deg([1, 1, 0]), [45, 45, 90])

    def test_zero_vector_gives_nan(self):
        assert np.all(np.isnan(vectors.axis_angles_deg([0, 0, 0])))

    def test_nan_input_gives_nan(self):
        assert np.all(np.isnan(vectors.axis_angles_deg([np.nan, np.nan, np.nan])))
