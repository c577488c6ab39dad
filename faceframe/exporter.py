"""
Export face crops and per-frame results.

This module provides exporters for:
- Cropped face images (PNG, JPG) via OpenCV
- Per-frame estimator results as JSON

Images are held in RGB(A) order inside faceframe. Conversion to and from
OpenCV's BGR(A) order happens only here.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from .pipeline import FrameResult

logger = logging.getLogger(__name__)


class CropExporter:
    """
    Write cropped face images, one file per captured frame.

    Supports grayscale, RGB and RGBA crops in any format OpenCV can write.
    """

    def __init__(self, crops: Sequence[Tuple[str, NDArray[np.uint8]]]):
        """
        Args:
            crops: (filename, image) pairs. Images are (H, W) or (H, W, C)
                with C = 3 (RGB) or 4 (RGBA).
        """
        filenames = [name for name, _ in crops]
        duplicates = sorted({name for name in filenames if filenames.count(name) > 1})
        if duplicates:
            raise ValueError(f"Crop filenames must be unique, got duplicates: {duplicates}")
        self.crops = list(crops)

    @classmethod
    def from_results(
        cls,
        results: Sequence["FrameResult"],
        filename_pattern: str = "face_{:04d}.png"
    ) -> "CropExporter":
        """
        Collect the cut-out crops of frame results, named by frame index.

        Frames without a crop image (not forward, skipped, or no source
        image) are left out.
        """
        crops = [
            (filename_pattern.format(r.index), r.crop_image)
            for r in results
            if r.crop_image is not None
        ]
        return cls(crops)

    def __len__(self) -> int:
        return len(self.crops)

    def export(self, output_dir: Union[str, Path]) -> List[Path]:
        """
        Write every crop into output_dir (created if needed).

        Returns:
            Paths written, in frame order
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        saved_paths = [self._save_image(image, output_dir / name) for name, image in self.crops]

        logger.debug("Saved %d crops to %s", len(saved_paths), output_dir)
        return saved_paths

    def _save_image(self, image: NDArray[np.uint8], filepath: Path) -> Path:
        """Write one RGB(A) or grayscale crop, converting to OpenCV's BGR(A) order."""
        import cv2

        if image.ndim == 2:
            image_bgr = image
        elif image.shape[2] == 4:  # RGBA
            image_bgr = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
        elif image.shape[2] == 3:  # RGB
            image_bgr = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
        else:
            raise ValueError(f"Unexpected number of channels: {image.shape[2]}")

        if not cv2.imwrite(str(filepath), image_bgr):
            raise OSError(f"Could not write image: {filepath}")
        return filepath

    @staticmethod
    def load_image(filepath: Union[str, Path]) -> NDArray[np.uint8]:
        """
        Load an image file as an RGB array.

        Args:
            filepath: Path to image

        Returns:
            Image array (H, W, 3), RGB order

        Raises:
            FileNotFoundError: If the file cannot be read as an image
        """
        import cv2

        bgr = cv2.imread(str(filepath), cv2.IMREAD_COLOR)
        if bgr is None:
            raise FileNotFoundError(f"Could not read image: {filepath}")
        return np.ascontiguousarray(cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB))


class ResultExporter:
    """Write per-frame result dictionaries to a JSON file."""

    def __init__(self, results: List[Dict[str, Any]]):
        self.results = results

    def export(self, filepath: Path) -> Path:
        """
        Write results as JSON:

            {"version": "1.0", "n_frames": N, "n_forward": F, "frames": [...]}

        n_forward counts frames classified forward-facing. Non-finite numbers
        are rejected so the file stays standard JSON.

        Args:
            filepath: Output JSON path (parent created if needed)

        Returns:
            Path written
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": "1.0",
            "n_frames": len(self.results),
            "n_forward": sum(1 for r in self.results if r.get("is_forward")),
            "frames": self.results,
        }
        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2, allow_nan=False)
            f.write('\n')

        logger.debug("Wrote %d frame results to %s", len(self.results), filepath)
        return filepath
