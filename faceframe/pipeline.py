"""
High-level pipeline running the estimator over a sequence of frames.

This module provides the FramePipeline class which ties together:
- Frame loading (landmark JSON files, optional source images)
- Per-frame estimation
- Crop extraction from source images
- Export of crops and per-frame results

Frames flow through the estimator as a stateless transform stage. Malformed
frames are reported and skipped; they never stop the stream.

Example:
    pipeline = FramePipeline.from_json_files(paths, image_paths=images)
    results = pipeline.run()
    pipeline.export_crops("./faces", results)
    pipeline.export_results("./results.json", results)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .crop import extract_crop
from .errors import DegenerateCropError, InsufficientLandmarksError
from .estimator import EstimatorResult, OrientationCropEstimator
from .exporter import CropExporter, ResultExporter
from .landmarks import LandmarkIngest

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Frame:
    """One delivered frame: landmarks plus what crops are measured against."""
    index: int
    landmarks: Union[list, NDArray[np.float64]]
    reference_size: Optional[Tuple[int, int]] = None
    image: Optional[NDArray[np.uint8]] = None
    source: Optional[str] = None


@dataclass(frozen=True, eq=False)
class FrameResult:
    """Outcome of one frame. `result` is None when the frame was skipped."""
    index: int
    result: Optional[EstimatorResult] = None
    error: Optional[str] = None
    crop_image: Optional[NDArray[np.uint8]] = None
    source: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.result is None

    @property
    def has_crop(self) -> bool:
        return self.result is not None and self.result.crop is not None

    @property
    def captured(self) -> bool:
        """A crop was computed and, when an image was given, cut out cleanly."""
        return self.has_crop and self.error is None

    def to_dict(self) -> dict:
        data = {
            'index': self.index,
            'source': self.source,
            'skipped': self.skipped,
            'error': self.error,
        }
        if self.result is not None:
            data.update(self.result.to_dict())
        return data


class FramePipeline:
    """
    Run the orientation and crop estimator over a stream of frames.

    Modes:
        continuous:    classify every frame; crop each forward-facing one
        first_forward: stop after the first forward-facing frame that
                       produced a valid crop (one-shot capture)
    """

    def __init__(
        self,
        estimator: Optional[OrientationCropEstimator] = None,
        frames: Optional[Iterable[Frame]] = None,
        mode: str = "continuous",
        crop_enabled: bool = True
    ):
        if mode not in ("continuous", "first_forward"):
            raise ValueError(f"Unknown pipeline mode: '{mode}'")
        self.estimator = estimator if estimator is not None else OrientationCropEstimator()
        self.frames = frames if frames is not None else []
        self.mode = mode
        self.crop_enabled = crop_enabled

    @classmethod
    def from_json_files(
        cls,
        paths: Sequence[Union[str, Path]],
        image_paths: Optional[Sequence[Union[str, Path]]] = None,
        reference_size: Optional[Tuple[int, int]] = None,
        estimator: Optional[OrientationCropEstimator] = None,
        mode: str = "continuous",
        crop_enabled: bool = True
    ) -> "FramePipeline":
        """
        Create pipeline reading one landmark JSON file per frame.

        Files are read lazily as the pipeline runs, so an unreadable file only
        skips its own frame.

        Args:
            paths: Landmark JSON files in frame order
            image_paths: Optional source image per frame (same length as paths)
            reference_size: (width, height) overriding the JSON/image size
            estimator: Estimator to use (default settings if None)
            mode: "continuous" or "first_forward"
            crop_enabled: Compute crops for forward-facing frames

        Returns:
            FramePipeline instance
        """
        if image_paths is not None and len(image_paths) != len(paths):
            raise ValueError(
                f"Number of images ({len(image_paths)}) must match "
                f"number of landmark files ({len(paths)})"
            )
        estimator = estimator if estimator is not None else OrientationCropEstimator()
        frames = _iter_json_frames(paths, image_paths, reference_size, estimator)
        return cls(estimator, frames, mode=mode, crop_enabled=crop_enabled)

    def process(self) -> Iterator[FrameResult]:
        """
        Lazily process frames, yielding one FrameResult per frame.

        Errors on individual frames are logged and attached to that frame's
        result; the stream carries on.
        """
        for frame in self.frames:
            if isinstance(frame, FrameResult):
                # Frame failed to load upstream
                yield frame
                continue

            frame_result = self.process_frame(frame)
            yield frame_result

            if self.mode == "first_forward" and frame_result.captured:
                logger.info("Forward-facing crop captured at frame %d, stopping", frame.index)
                return

    def run(self) -> List[FrameResult]:
        """Process all frames and return the results as a list."""
        return list(self.process())

    def process_frame(self, frame: Frame) -> FrameResult:
        """Estimate a single frame and cut its crop out of the image if present."""
        reference_size = frame.reference_size
        if reference_size is None and frame.image is not None:
            h, w = frame.image.shape[:2]
            reference_size = (w, h)
        if not self.crop_enabled:
            reference_size = None

        try:
            result = self.estimator.compute(frame.landmarks, reference_size=reference_size)
        except InsufficientLandmarksError as e:
            logger.warning("Skipping frame %d: %s", frame.index, e)
            return FrameResult(index=frame.index, error=str(e), source=frame.source)
        except DegenerateCropError as e:
            # Classification is still useful without the crop
            logger.warning("Frame %d: %s", frame.index, e)
            result = self.estimator.compute(frame.landmarks, reference_size=None)
            return FrameResult(index=frame.index, result=result, error=str(e), source=frame.source)

        crop_image = None
        if result.crop is not None and frame.image is not None:
            try:
                crop_image = extract_crop(frame.image, result.crop)
            except DegenerateCropError as e:
                logger.warning("Frame %d: %s", frame.index, e)
                return FrameResult(
                    index=frame.index, result=result, error=str(e), source=frame.source
                )

        return FrameResult(
            index=frame.index,
            result=result,
            crop_image=crop_image,
            source=frame.source,
        )

    def export_crops(
        self,
        output_dir: Union[str, Path],
        results: Sequence[FrameResult],
        filename_pattern: str = "face_{:04d}.png"
    ) -> List[Path]:
        """
        Save extracted crop images.

        Args:
            output_dir: Directory to write to (created if needed)
            results: Frame results from process()/run()
            filename_pattern: Format string taking the frame index

        Returns:
            Paths of saved images
        """
        exporter = CropExporter.from_results(results, filename_pattern)
        if not len(exporter):
            logger.info("No crops to export")
            return []
        return exporter.export(output_dir)

    def export_results(
        self,
        filepath: Union[str, Path],
        results: Sequence[FrameResult]
    ) -> Path:
        """Write per-frame results to a JSON file."""
        exporter = ResultExporter([r.to_dict() for r in results])
        return exporter.export(Path(filepath))


def _iter_json_frames(
    paths: Sequence[Union[str, Path]],
    image_paths: Optional[Sequence[Union[str, Path]]],
    reference_size: Optional[Tuple[int, int]],
    estimator: OrientationCropEstimator
) -> Iterator[Union[Frame, FrameResult]]:
    """Load frames one at a time; unreadable ones become skipped FrameResults."""
    for i, path in enumerate(paths, start=1):
        image = None
        try:
            landmarks, image_size = LandmarkIngest.from_json(path, indices=estimator.indices)
            if image_paths is not None:
                image = CropExporter.load_image(image_paths[i - 1])
        except (ValueError, OSError) as e:
            logger.warning("Skipping frame %d (%s): %s", i, path, e)
            yield FrameResult(index=i, error=str(e), source=str(path))
            continue

        # A loaded image is measured directly unless a size was forced
        if reference_size is None and image is None:
            reference_size_for_frame = image_size
        else:
            reference_size_for_frame = reference_size

        yield Frame(
            index=i,
            landmarks=landmarks,
            reference_size=reference_size_for_frame,
            image=image,
            source=str(path),
        )
