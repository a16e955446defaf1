"""
Face Redaction CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, wire together
    the detector and I/O handlers, and run the main processing loop.

Usage:
    python main.py --source photo.jpg                  # Single image
    python main.py --source photos/ --tta              # Directory, flip TTA
    python main.py --source photos/ --output-mode save_image,save_json
    python main.py --config my_config.yaml

This module is the executable entry point. parse_args, apply_cli_overrides
and main take explicit arguments so tests can drive them directly.
"""

import argparse
import dataclasses
import logging
import sys
import time

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

from facescrub.config import AppConfig, load_config, validate_config
from facescrub.detector import FaceDetector
from facescrub.input_handler import InputHandler
from facescrub.model_loader import ModelLoadError
from facescrub.output_handler import OutputHandler


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Face Redaction — blur faces in photos",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--source",
        type=str,
        help="Input source: path to an image file or a directory of images.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--model",
        type=str,
        help="ONNX model URL or path. Overrides config.",
    )
    parser.add_argument(
        "--confidence",
        type=float,
        help="Detection confidence threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--tta",
        action="store_true",
        help="Enable horizontal-flip test-time augmentation.",
    )
    parser.add_argument(
        "--output-mode",
        type=str,
        help="Output mode(s). Use comma-separated values for multiple outputs: "
             "save_image, save_json, save_csv. Overrides config.",
    )
    parser.add_argument(
        "--output-path",
        type=str,
        help="Directory for output artifacts. Overrides config.",
    )

    return parser.parse_args(argv)


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of config with CLI flags applied, then re-validate."""
    if args.source is not None:
        config = dataclasses.replace(
            config, input=dataclasses.replace(config.input, source=args.source)
        )
    if args.model is not None:
        config = dataclasses.replace(
            config, model=dataclasses.replace(config.model, source=args.model)
        )
    if args.confidence is not None:
        config = dataclasses.replace(
            config,
            detection=dataclasses.replace(config.detection, confidence_threshold=args.confidence),
        )
    if args.tta:
        config = dataclasses.replace(
            config, detection=dataclasses.replace(config.detection, tta_flip=True)
        )
    if args.output_mode is not None:
        config = dataclasses.replace(
            config, output=dataclasses.replace(config.output, mode=args.output_mode.lower())
        )
    if args.output_path is not None:
        config = dataclasses.replace(
            config, output=dataclasses.replace(config.output, save_path=args.output_path)
        )

    validate_config(config)
    return config


def main(argv=None) -> int:
    """Main execution loop."""
    args = parse_args(argv)

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = apply_cli_overrides(load_config(args.config), args)
        logger.info("Configuration active for this run.")
    except Exception as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Initialize Components
    try:
        detector = FaceDetector(config)
        input_handler = InputHandler(source=config.input.source)
        output_handler = OutputHandler(config)

    except (FileNotFoundError, ValueError, ModelLoadError) as e:
        logger.error("Initialization failed: %s", e)
        return 1
    except Exception as e:
        logger.exception("Unexpected initialization error: %s", e)
        return 1

    # 3. Processing Loop
    logger.info("Processing %d image(s).", len(input_handler))

    image_count = 0
    face_count = 0
    start_time = time.perf_counter()

    try:
        for image_id, path, frame in input_handler:
            faces = detector.detect(frame)
            image_count += 1
            face_count += len(faces)
            logger.info("[%d] %s: %d face(s)", image_id, path.name, len(faces))

            output_handler.process_image(path, frame, faces)

    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    except Exception as e:
        logger.exception("Runtime error during processing: %s", e)
        return 1
    finally:
        # 4. Cleanup
        elapsed = time.perf_counter() - start_time
        output_handler.finalize()

        logger.info(
            "Processing finished. Images: %d. Faces: %d. Elapsed: %.2fs.",
            image_count, face_count, elapsed,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
