"""
Tests for the frame pipeline and exporters.
"""

import json
import tempfile
from pathlib import Path

import numpy as np
import pytest

from faceframe.estimator import OrientationCropEstimator
from faceframe.exporter import CropExporter, ResultExporter
from faceframe.pipeline import Frame, FramePipeline, FrameResult


def _write_frame_json(directory, name, landmarks, image_size=(1000, 2000)):
    data = {"source": "mediapipe", "landmarks": np.asarray(landmarks).tolist()}
    if image_size is not None:
        data["image_size"] = list(image_size)
    path = Path(directory) / name
    with open(path, 'w') as f:
        json.dump(data, f)
    return path


class TestFramePipelineContinuous:
    """Test continuous mode over in-memory frames."""

    def test_classifies_every_frame(self, forward_landmarks, sideways_landmarks):
        frames = [
            Frame(1, sideways_landmarks, (1000, 2000)),
            Frame(2, forward_landmarks, (1000, 2000)),
            Frame(3, sideways_landmarks, (1000, 2000)),
            Frame(4, forward_landmarks, (1000, 2000)),
        ]
        results = FramePipeline(frames=frames).run()

        assert [r.index for r in results] == [1, 2, 3, 4]
        assert [r.result.is_forward for r in results] == [False, True, False, True]
        assert [r.has_crop for r in results] == [False, True, False, True]

    def test_skips_malformed_frames(self, forward_landmarks):
        """Short landmark sets are reported and skipped; the stream continues."""
        frames = [
            Frame(1, forward_landmarks[:100], (1000, 2000)),
            Frame(2, forward_landmarks, (1000, 2000)),
        ]
        results = FramePipeline(frames=frames).run()

        assert results[0].skipped
        assert "Insufficient" in results[0].error
        assert not results[1].skipped
        assert results[1].has_crop

    def test_degenerate_crop_keeps_classification(self, landmark_factory):
        lm = landmark_factory()
        lm[:, 1] = 0.5
        results = FramePipeline(frames=[Frame(1, lm, (100, 100))]).run()

        assert results[0].result.is_forward
        assert results[0].result.crop is None
        assert "Degenerate" in results[0].error

    def test_crop_disabled(self, forward_landmarks):
        pipeline = FramePipeline(frames=[Frame(1, forward_landmarks, (100, 100))], crop_enabled=False)
        results = pipeline.run()
        assert results[0].result.is_forward
        assert not results[0].has_crop

    def test_reference_size_from_image(self, forward_landmarks):
        """Without an explicit size the image shape is the reference."""
        image = np.zeros((2000, 1000, 3), dtype=np.uint8)
        results = FramePipeline(frames=[Frame(1, forward_landmarks, image=image)]).run()

        assert results[0].result.crop.as_tuple() == pytest.approx((100.0, 500.0, 600.0, 1400.0))
        assert results[0].crop_image.shape == (1400, 600, 3)

    def test_crop_outside_image(self, forward_landmarks):
        """A reference size that doesn't match the image can miss it entirely."""
        image = np.zeros((50, 50, 3), dtype=np.uint8)
        results = FramePipeline(frames=[Frame(1, forward_landmarks, (1000, 2000), image=image)]).run()

        assert results[0].result.crop is not None
        assert results[0].crop_image is None
        assert "does not overlap" in results[0].error

    def test_process_is_lazy(self, forward_landmarks):
        def frames():
            yield Frame(1, forward_landmarks)
            raise AssertionError("pipeline read past the first frame")

        first = next(FramePipeline(frames=frames()).process())
        assert first.index == 1

    def test_rejects_unknown_mode(self):
        with pytest.raises(ValueError, match="mode"):
            FramePipeline(mode="sometimes")


class TestFramePipelineFirstForward:
    """Test one-shot crop-and-freeze mode."""

    def test_stops_at_first_forward_crop(self, forward_landmarks, sideways_landmarks):
        frames = [
            Frame(1, sideways_landmarks, (1000, 2000)),
            Frame(2, forward_landmarks, (1000, 2000)),
            Frame(3, forward_landmarks, (1000, 2000)),
        ]
        results = FramePipeline(frames=frames, mode="first_forward").run()

        assert [r.index for r in results] == [1, 2]
        assert results[-1].has_crop

    def test_forward_without_crop_does_not_stop(self, forward_landmarks):
        """A forward frame with no reference size cannot be captured."""
        frames = [
            Frame(1, forward_landmarks),
            Frame(2, forward_landmarks, (1000, 2000)),
            Frame(3, forward_landmarks, (1000, 2000)),
        ]
        results = FramePipeline(frames=frames, mode="first_forward").run()
        assert [r.index for r in results] == [1, 2]

    def test_failed_extraction_does_not_stop(self, forward_landmarks):
        """A crop that misses its image is not a capture; the next good one is."""
        small = np.zeros((50, 50, 3), dtype=np.uint8)
        full = np.zeros((2000, 1000, 3), dtype=np.uint8)
        frames = [
            Frame(1, forward_landmarks, (1000, 2000), image=small),
            Frame(2, forward_landmarks, image=full),
            Frame(3, forward_landmarks, image=full),
        ]
        results = FramePipeline(frames=frames, mode="first_forward").run()

        assert [r.index for r in results] == [1, 2]
        assert not results[0].captured
        assert results[1].captured
        assert results[1].crop_image is not None

    def test_no_forward_frames(self, sideways_landmarks):
        frames = [Frame(i, sideways_landmarks, (100, 100)) for i in range(1, 4)]
        results = FramePipeline(frames=frames, mode="first_forward").run()
        assert len(results) == 3


class TestFramePipelineFromJSON:
    """Test FramePipeline.from_json_files()."""

    def test_loads_frames(self, forward_landmarks, sideways_landmarks):
        with tempfile.TemporaryDirectory() as tmp:
            paths = [
                _write_frame_json(tmp, "f1.json", sideways_landmarks),
                _write_frame_json(tmp, "f2.json", forward_landmarks),
            ]
            results = FramePipeline.from_json_files(paths).run()

        assert [r.result.is_forward for r in results] == [False, True]
        assert results[1].result.crop.as_tuple() == pytest.approx((100.0, 500.0, 600.0, 1400.0))
        assert results[1].source.endswith("f2.json")

    def test_reference_size_override(self, forward_landmarks):
        with tempfile.TemporaryDirectory() as tmp:
            paths = [_write_frame_json(tmp, "f1.json", forward_landmarks)]
            results = FramePipeline.from_json_files(paths, reference_size=(100, 200)).run()

        assert results[0].result.crop.as_tuple() == pytest.approx((10.0, 50.0, 60.0, 140.0))

    def test_unreadable_file_is_skipped(self, forward_landmarks):
        with tempfile.TemporaryDirectory() as tmp:
            paths = [
                Path(tmp) / "missing.json",
                _write_frame_json(tmp, "f2.json", forward_landmarks),
            ]
            results = FramePipeline.from_json_files(paths).run()

        assert results[0].skipped
        assert results[0].index == 1
        assert results[1].result.is_forward

    def test_short_file_is_skipped(self, forward_landmarks):
        with tempfile.TemporaryDirectory() as tmp:
            paths = [_write_frame_json(tmp, "f1.json", forward_landmarks[:300])]
            results = FramePipeline.from_json_files(paths).run()

        assert results[0].skipped

    def test_malformed_files_are_skipped(self, forward_landmarks):
        """Wrongly shaped JSON skips its own frame; later frames still run."""
        malformed = [
            {"source": "mediapipe", "landmarks": 5},
            [1, 2, 3],
            {"source": "mediapipe", "image_size": 7, "landmarks": forward_landmarks.tolist()},
            {"source": "mediapipe", "faces": {"a": 1}},
            {"source": "mediapipe", "landmarks": [[0.1, "x", None]] * 468},
        ]
        with tempfile.TemporaryDirectory() as tmp:
            paths = []
            for i, data in enumerate(malformed):
                path = Path(tmp) / f"bad{i}.json"
                with open(path, 'w') as f:
                    json.dump(data, f)
                paths.append(path)
            paths.append(_write_frame_json(tmp, "good.json", forward_landmarks))

            results = FramePipeline.from_json_files(paths).run()

        assert len(results) == 6
        assert all(r.skipped for r in results[:5])
        assert all(r.error for r in results[:5])
        assert results[5].result.is_forward
        assert results[5].has_crop

    def test_non_finite_landmarks_are_skipped(self, landmark_factory):
        lm = landmark_factory()
        lm[7, 2] = np.nan
        results = FramePipeline(frames=[Frame(1, lm, (100, 100))]).run()

        assert results[0].skipped
        assert "NaN" in results[0].error

    def test_image_count_must_match(self):
        with pytest.raises(ValueError, match="must match"):
            FramePipeline.from_json_files(["a.json", "b.json"], image_paths=["a.png"])

    def test_custom_estimator(self, sideways_landmarks):
        estimator = OrientationCropEstimator(classify_axis="lateral")
        with tempfile.TemporaryDirectory() as tmp:
            paths = [_write_frame_json(tmp, "f1.json", sideways_landmarks)]
            results = FramePipeline.from_json_files(paths, estimator=estimator).run()

        # Lateral axis along +X: angles (0, 90, 90)
        assert results[0].result.angles.as_tuple() == pytest.approx((0.0, 90.0, 90.0))


class TestExport:
    """Test crop and result export."""

    def test_export_crops(self, forward_landmarks):
        image = np.full((2000, 1000, 3), 128, dtype=np.uint8)
        frames = [Frame(7, forward_landmarks, image=image)]
        pipeline = FramePipeline(frames=frames)
        results = pipeline.run()

        with tempfile.TemporaryDirectory() as tmp:
            saved = pipeline.export_crops(tmp, results)
            assert [p.name for p in saved] == ["face_0007.png"]
            loaded = CropExporter.load_image(saved[0])

        assert loaded.shape == (1400, 600, 3)

    def test_export_crops_none(self, sideways_landmarks):
        pipeline = FramePipeline(frames=[Frame(1, sideways_landmarks, (100, 100))])
        with tempfile.TemporaryDirectory() as tmp:
            assert pipeline.export_crops(tmp, pipeline.run()) == []

    def test_export_results(self, forward_landmarks, sideways_landmarks):
        frames = [
            Frame(1, forward_landmarks[:10]),
            Frame(2, sideways_landmarks, (100, 100)),
            Frame(3, forward_landmarks, (1000, 2000)),
        ]
        pipeline = FramePipeline(frames=frames)
        results = pipeline.run()

        with tempfile.TemporaryDirectory() as tmp:
            path = pipeline.export_results(Path(tmp) / "out" / "results.json", results)
            with open(path) as f:
                data = json.load(f)

        assert data["n_frames"] == 3
        assert data["n_forward"] == 1
        assert data["frames"][0]["skipped"] is True
        assert data["frames"][2]["crop"] == pytest.approx([100.0, 500.0, 600.0, 1400.0])


class TestCropExporter:
    """Test CropExporter directly."""

    def test_duplicate_filenames(self):
        image = np.zeros((2, 2, 3), dtype=np.uint8)
        with pytest.raises(ValueError, match="unique"):
            CropExporter([("a.png", image), ("a.png", image)])

    def test_from_results_keeps_cut_out_crops(self):
        image = np.zeros((2, 2, 3), dtype=np.uint8)
        results = [
            FrameResult(index=1),
            FrameResult(index=4, crop_image=image),
        ]
        exporter = CropExporter.from_results(results, "f{:02d}.jpg")
        assert len(exporter) == 1
        assert exporter.crops[0][0] == "f04.jpg"

    def test_rgb_order_preserved(self):
        """Saving and loading round-trips RGB order through OpenCV's BGR."""
        image = np.zeros((4, 4, 3), dtype=np.uint8)
        image[:, :, 0] = 255  # pure red
        with tempfile.TemporaryDirectory() as tmp:
            saved = CropExporter([("red.png", image)]).export(Path(tmp))
            loaded = CropExporter.load_image(saved[0])
        assert loaded[0, 0].tolist() == [255, 0, 0]

    def test_rejects_two_channels(self):
        with tempfile.TemporaryDirectory() as tmp:
            with pytest.raises(ValueError, match="channels"):
                CropExporter([("x.png", np.zeros((2, 2, 2), dtype=np.uint8))]).export(Path(tmp))

    def test_load_missing_image(self):
        with pytest.raises(FileNotFoundError):
            CropExporter.load_image("/nonexistent/image.png")


class TestResultExporter:
    def test_writes_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = ResultExporter([{"is_forward": True}, {"is_forward": False}]).export(
                Path(tmp) / "r.json"
            )
            with open(path) as f:
                data = json.load(f)
        assert data["n_frames"] == 2
        assert data["n_forward"] == 1


def test_frame_result_to_dict_skipped():
    data = FrameResult(index=3, error="bad").to_dict()
    assert data == {'index': 3, 'source': None, 'skipped': True, 'error': 'bad'}


def test_results_json_rejects_non_finite():
    with tempfile.TemporaryDirectory() as tmp:
        with pytest.raises(ValueError):
            ResultExporter([{"crop": [float("nan"), 0.0, 1.0, 1.0]}]).export(Path(tmp) / "r.json")
