"""
Command-line interface for faceframe.

This module provides the main entry point for the CLI tool.
"""

import logging
import sys
from typing import Optional

from .config import create_argument_parser, Config
from .estimator import OrientationCropEstimator, format_diagnostics
from .pipeline import FramePipeline


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for CLI.

    Args:
        argv: Command-line arguments (None = sys.argv)

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    # Parse arguments
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Handle --save-config
    if args.save_config:
        template = Config.generate_default_config_template()
        with open(args.save_config, 'w') as f:
            f.write(template)
        print(f"Default configuration saved to: {args.save_config}")
        print(f"Edit this file and use with: faceframe --config {args.save_config}")
        return 0

    # Create config
    try:
        config = Config.from_args(args)
    except (ValueError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print(f"\nUse --help for usage information or --save-config to generate a template.", file=sys.stderr)
        return 1

    # Configure logging
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    calibration = config.classifier.to_calibration()

    # Print banner
    if args.verbose:
        print("=" * 60)
        print("faceframe - Forward-facing Classification & Face Crop")
        print("=" * 60)
        print(f"Frames: {len(config.inputs)}")
        print(f"Mode: {config.mode}")
        print(f"Calibration: target={calibration.target}, tolerance=±{calibration.tolerance}")
        print(f"Classify axis: {config.classifier.axis}")
        print("=" * 60)

    try:
        estimator = OrientationCropEstimator.from_config(config)
        pipeline = FramePipeline.from_json_files(
            config.inputs,
            image_paths=config.images or None,
            reference_size=config.crop.reference_size,
            estimator=estimator,
            mode=config.mode,
            crop_enabled=config.crop.enabled
        )

        results = []
        for frame_result in pipeline.process():
            results.append(frame_result)
            print(f"--- frame {frame_result.index} ({frame_result.source}) ---")
            if frame_result.skipped:
                print(f"skipped: {frame_result.error}")
                continue
            print(format_diagnostics(frame_result.result))
            if frame_result.has_crop:
                crop = frame_result.result.crop
                centroid = frame_result.result.centroid
                print(
                    f"crop = ({crop.x:.0f}, {crop.y:.0f}, {crop.width:.0f}, {crop.height:.0f})"
                )
                print(
                    f"centroid = ({centroid.x:.0f}, {centroid.y:.0f}, {centroid.z:.0f})"
                )
            if frame_result.error:
                print(f"crop error: {frame_result.error}")

        # Export
        if config.export.output_dir:
            saved_paths = pipeline.export_crops(
                config.export.output_dir,
                results,
                filename_pattern=config.export.filename_pattern
            )
            if args.verbose:
                print(f"\n  crops ({len(saved_paths)}) → {config.export.output_dir}")

        if config.export.results_json:
            path = pipeline.export_results(config.export.results_json, results)
            if args.verbose:
                print(f"  results → {path}")

        if args.verbose:
            n_forward = sum(1 for r in results if r.result is not None and r.result.is_forward)
            n_skipped = sum(1 for r in results if r.skipped)
            print("\n" + "=" * 60)
            print(f"✓ {len(results)} frames, {n_forward} forward-facing, {n_skipped} skipped")
            print("=" * 60)

        return 0

    except FileNotFoundError as e:
        print(f"Error: File not found: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
