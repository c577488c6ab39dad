"""
Configuration management for faceframe.

Handles:
- Command-line argument parsing
- YAML config file loading
- Configuration validation
- Merging configs with defaults
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, List
import argparse

from .landmarks import (
    LandmarkIndices,
    MEDIAPIPE_CHIN_BOTTOM,
    MEDIAPIPE_FOREHEAD_TOP,
    MEDIAPIPE_LEFT_CHEEK,
    MEDIAPIPE_RIGHT_CHEEK,
)
from .pose import CALIBRATION_PRESETS, CLASSIFY_AXES, DEFAULT_PRESET, Calibration, get_calibration

PIPELINE_MODES = ("continuous", "first_forward")


@dataclass
class LandmarkConfig:
    """Anchor landmark indices."""
    top: int = MEDIAPIPE_FOREHEAD_TOP
    bottom: int = MEDIAPIPE_CHIN_BOTTOM
    left_cheek: int = MEDIAPIPE_LEFT_CHEEK
    right_cheek: int = MEDIAPIPE_RIGHT_CHEEK

    def to_indices(self) -> LandmarkIndices:
        return LandmarkIndices(
            top=self.top,
            bottom=self.bottom,
            left_cheek=self.left_cheek,
            right_cheek=self.right_cheek
        )


@dataclass
class ClassifierConfig:
    """Forward-facing classification configuration."""
    preset: str = DEFAULT_PRESET  # "level", "tilted"
    target: Optional[Tuple[float, float, float]] = None  # Overrides preset target if set
    tolerance: Optional[float] = None  # Overrides preset tolerance if set
    axis: str = "forward"  # "forward", "vertical", "lateral"

    def to_calibration(self) -> Calibration:
        """Resolve the preset, then apply any explicit target/tolerance."""
        base = get_calibration(self.preset)
        return Calibration(
            target=self.target if self.target is not None else base.target,
            tolerance=self.tolerance if self.tolerance is not None else base.tolerance
        )


@dataclass
class CropConfig:
    """Crop application configuration."""
    enabled: bool = True
    reference_size: Optional[Tuple[int, int]] = None  # None = from image or JSON


@dataclass
class ExportConfig:
    """Export configuration."""
    output_dir: Optional[str] = None  # None = print only, write nothing
    filename_pattern: str = "face_{:04d}.png"
    results_json: Optional[str] = None


@dataclass
class Config:
    """Complete configuration."""
    inputs: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    mode: str = "continuous"  # "continuous", "first_forward"
    landmarks: LandmarkConfig = field(default_factory=LandmarkConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    crop: CropConfig = field(default_factory=CropConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    def validate(self) -> None:
        """
        Check cross-field constraints.

        Raises:
            ValueError: If any setting is out of range or inconsistent
        """
        if not self.inputs:
            raise ValueError("at least one landmark JSON input must be specified")
        if self.images and len(self.images) != len(self.inputs):
            raise ValueError(
                f"Number of images ({len(self.images)}) must match "
                f"number of inputs ({len(self.inputs)})"
            )
        if self.mode not in PIPELINE_MODES:
            raise ValueError(f"Invalid mode: {self.mode}. Use one of: {', '.join(PIPELINE_MODES)}")
        if self.classifier.axis not in CLASSIFY_AXES:
            raise ValueError(
                f"Invalid classify axis: {self.classifier.axis}. "
                f"Use one of: {', '.join(CLASSIFY_AXES)}"
            )
        # Raises on unknown preset or bad target/tolerance
        self.classifier.to_calibration()
        self.landmarks.to_indices()

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "Config":
        """
        Create config from parsed command-line arguments.

        Loads config file if specified, then applies command-line overrides.

        Args:
            args: Parsed arguments from argparse

        Returns:
            Config instance

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        if args.config:
            config = cls.from_yaml(args.config)
        else:
            config = cls()

        # Input overrides
        if args.inputs:
            config.inputs = list(args.inputs)
        if args.image:
            config.images = list(args.image)
        if args.mode:
            config.mode = args.mode

        # Classifier overrides
        if args.preset:
            config.classifier.preset = args.preset
        if args.target:
            try:
                a, b, c = [float(x) for x in args.target.split(',')]
                config.classifier.target = (a, b, c)
            except ValueError:
                raise ValueError(f"Invalid target format: {args.target}. Use X,Y,Z degrees (e.g., 90,180,90)")
        if args.tolerance is not None:
            config.classifier.tolerance = args.tolerance
        if args.classify_axis:
            config.classifier.axis = args.classify_axis

        # Landmark overrides
        if args.indices:
            try:
                top, bottom, left, right = [int(x) for x in args.indices.split(',')]
            except ValueError:
                raise ValueError(
                    f"Invalid indices format: {args.indices}. "
                    f"Use TOP,BOTTOM,LEFT,RIGHT (e.g., 10,152,425,205)"
                )
            config.landmarks = LandmarkConfig(top=top, bottom=bottom, left_cheek=left, right_cheek=right)

        # Crop overrides
        if args.no_crop:
            config.crop.enabled = False
        if args.reference_size:
            try:
                w, h = args.reference_size.lower().split('x')
                config.crop.reference_size = (int(w), int(h))
            except ValueError:
                raise ValueError(f"Invalid reference size format: {args.reference_size}. Use WxH (e.g., 1080x1920)")

        # Export overrides
        if args.output_dir:
            config.export.output_dir = args.output_dir
        if args.filename_pattern:
            config.export.filename_pattern = args.filename_pattern
        if args.results_json:
            config.export.results_json = args.results_json

        config.validate()
        return config

    @classmethod
    def from_yaml(cls, filepath: str) -> "Config":
        """
        Load config from YAML file.

        Args:
            filepath: Path to YAML config file

        Returns:
            Config instance
        """
        import yaml

        with open(filepath, 'r') as f:
            data = yaml.safe_load(f) or {}

        landmark_data = data.get('landmarks', {})
        landmarks = LandmarkConfig(
            top=landmark_data.get('top', MEDIAPIPE_FOREHEAD_TOP),
            bottom=landmark_data.get('bottom', MEDIAPIPE_CHIN_BOTTOM),
            left_cheek=landmark_data.get('left_cheek', MEDIAPIPE_LEFT_CHEEK),
            right_cheek=landmark_data.get('right_cheek', MEDIAPIPE_RIGHT_CHEEK)
        )

        classifier_data = data.get('classifier', {})
        target = classifier_data.get('target')
        classifier = ClassifierConfig(
            preset=classifier_data.get('preset', DEFAULT_PRESET),
            target=tuple(target) if target is not None else None,
            tolerance=classifier_data.get('tolerance'),
            axis=classifier_data.get('axis', 'forward')
        )

        crop_data = data.get('crop', {})
        reference_size = crop_data.get('reference_size')
        crop = CropConfig(
            enabled=crop_data.get('enabled', True),
            reference_size=tuple(reference_size) if reference_size is not None else None
        )

        export_data = data.get('export', {})
        export = ExportConfig(
            output_dir=export_data.get('output_dir'),
            filename_pattern=export_data.get('filename_pattern', 'face_{:04d}.png'),
            results_json=export_data.get('results_json')
        )

        return cls(
            inputs=list(data.get('inputs', [])),
            images=list(data.get('images', [])),
            mode=data.get('mode', 'continuous'),
            landmarks=landmarks,
            classifier=classifier,
            crop=crop,
            export=export
        )

    def to_yaml(self, filepath: str) -> None:
        """
        Save config to YAML file.

        Args:
            filepath: Path to save YAML config file
        """
        import yaml

        data = {
            'inputs': list(self.inputs),
            'images': list(self.images),
            'mode': self.mode,
            'landmarks': {
                'top': self.landmarks.top,
                'bottom': self.landmarks.bottom,
                'left_cheek': self.landmarks.left_cheek,
                'right_cheek': self.landmarks.right_cheek
            },
            'classifier': {
                'preset': self.classifier.preset,
                'target': list(self.classifier.target) if self.classifier.target is not None else None,
                'tolerance': self.classifier.tolerance,
                'axis': self.classifier.axis
            },
            'crop': {
                'enabled': self.crop.enabled,
                'reference_size': list(self.crop.reference_size) if self.crop.reference_size is not None else None
            },
            'export': {
                'output_dir': self.export.output_dir,
                'filename_pattern': self.export.filename_pattern,
                'results_json': self.export.results_json
            }
        }

        with open(filepath, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @staticmethod
    def generate_default_config_template() -> str:
        """
        Generate a default configuration template with comments.

        Returns:
            YAML string with comments explaining each option
        """
        return """# faceframe Configuration File
#
# Classifies head pose from MediaPipe face landmarks and crops forward-facing
# frames. Command-line arguments override values specified here.

# Landmark JSON files, one per frame, processed in order.
# Format: {"source": "mediapipe", "image_size": [w, h], "landmarks": [[x, y, z], ...]}
inputs: []

# Optional source images, one per input, to apply crops to
images: []

# Processing mode:
#   continuous:    classify every frame, crop each forward-facing one
#   first_forward: stop after the first forward-facing frame with a valid crop
mode: "continuous"

# MediaPipe Face Mesh anchor indices
landmarks:
  top: 10
  bottom: 152
  left_cheek: 425
  right_cheek: 205

# Forward-facing classification
classifier:
  # Calibration preset:
  #   level:  target (90, 180, 90) degrees, tolerance 5
  #   tilted: target (90, 175, 90) degrees, tolerance 3
  preset: "level"

  # Explicit target angles [x, y, z] in degrees (null = use preset)
  target: null

  # Explicit tolerance in degrees (null = use preset)
  tolerance: null

  # Head axis to classify: forward (face normal), vertical, lateral
  axis: "forward"

# Crop computation
crop:
  enabled: true

  # Reference image size [width, height] in pixels
  # (null = taken from the image, or from the JSON "image_size" field)
  reference_size: null

# Export configuration
export:
  # Directory for cropped face images (null = do not write crops)
  output_dir: null

  # Crop filename pattern (Python format string, frame number)
  filename_pattern: "face_{:04d}.png"

  # Path for per-frame results as JSON (null = do not write)
  results_json: null
"""


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create command-line argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="faceframe",
        description="Classify forward-facing head pose from MediaPipe face landmarks and crop the face",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        epilog="Configuration file (YAML) can be used to set all options. Command-line arguments override config file values."
    )

    # Config file
    parser.add_argument(
        "--config", "-c",
        help="Path to YAML configuration file"
    )

    # Inputs
    parser.add_argument(
        "inputs",
        nargs='*',
        help="Landmark JSON files, one per frame"
    )
    parser.add_argument(
        "--image", "-i",
        action="append",
        metavar="PATH",
        help="Source image for the matching input (repeat once per input)"
    )
    parser.add_argument(
        "--mode",
        choices=list(PIPELINE_MODES),
        help="continuous: every frame; first_forward: stop at the first forward-facing crop"
    )

    # Generate default config
    parser.add_argument(
        "--save-config",
        metavar="PATH",
        help="Save default configuration to YAML file and exit"
    )

    # Classifier options
    classifier_group = parser.add_argument_group("Classifier Options")
    classifier_group.add_argument(
        "--preset",
        choices=list(CALIBRATION_PRESETS),
        help="Calibration preset"
    )
    classifier_group.add_argument(
        "--target",
        type=str,
        metavar="X,Y,Z",
        help="Target axis angles in degrees (overrides preset, e.g., 90,180,90)"
    )
    classifier_group.add_argument(
        "--tolerance",
        type=float,
        metavar="DEGREES",
        help="Angle tolerance in degrees (overrides preset)"
    )
    classifier_group.add_argument(
        "--classify-axis",
        choices=list(CLASSIFY_AXES),
        help="Head axis the calibration is applied to"
    )
    classifier_group.add_argument(
        "--indices",
        type=str,
        metavar="TOP,BOTTOM,LEFT,RIGHT",
        help="Anchor landmark indices (default: 10,152,425,205)"
    )

    # Crop options
    crop_group = parser.add_argument_group("Crop Options")
    crop_group.add_argument(
        "--no-crop",
        action="store_true",
        help="Classify only, skip crop computation"
    )
    crop_group.add_argument(
        "--reference-size",
        type=str,
        metavar="WxH",
        help="Reference image size for crops (default: from image or JSON)"
    )

    # Export options
    export_group = parser.add_argument_group("Export Options")
    export_group.add_argument(
        "--output-dir", "-o",
        help="Directory for cropped face images"
    )
    export_group.add_argument(
        "--filename-pattern",
        metavar="PATTERN",
        help="Crop filename pattern (Python format string, e.g., 'face_{:04d}.png')"
    )
    export_group.add_argument(
        "--results-json",
        metavar="PATH",
        help="Write per-frame results to this JSON file"
    )

    # Other options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    return parser
