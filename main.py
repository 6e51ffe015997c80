"""
Smart Thumbnail CLI Entrypoint.

Responsibility:
    Read the command line, build the configuration, connect the cropper
    to the input and output handlers, and crop every image in the source.

Usage:
    python main.py --source photo.jpg                  # Single image
    python main.py --source images/ --width 320 --height 180
    python main.py --source images/ --output-mode save_image,save_json
    python main.py --config config.example.yaml --source images/

Run this file directly; nothing in the package imports it.
"""

import argparse
import logging
import sys
import time

import cv2

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

from smartclip.config import load_config
from smartclip.cropper import Cropper
from smartclip.errors import SmartclipError
from smartclip.input_handler import InputHandler
from smartclip.output_handler import OutputHandler


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Smart Thumbnail Cropper — Production CLI",
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
        help="YAML configuration file.",
    )
    parser.add_argument(
        "--width",
        type=int,
        help="Thumbnail width in pixels. Overrides config.",
    )
    parser.add_argument(
        "--height",
        type=int,
        help="Thumbnail height in pixels. Overrides config.",
    )
    parser.add_argument(
        "--output-mode",
        type=str,
        help="Output mode(s). Use comma-separated values for multiple outputs: "
             "save_image, save_debug, save_json, save_csv. "
             "Example: 'save_image,save_json'. Overrides config.",
    )
    parser.add_argument(
        "--output-path",
        type=str,
        help="Directory for thumbnails and crop records. Overrides config.",
    )

    return parser.parse_args()


def main() -> int:
    """Main execution loop."""
    args = parse_args()

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = load_config(
            args.config,
            overrides={
                "input": {"source": args.source},
                "crop": {"resize_width": args.width, "resize_height": args.height},
                "output": {"mode": args.output_mode, "save_path": args.output_path},
            },
        )
        logger.info(
            "Target size %dx%d, output mode(s): %s",
            config.crop.resize_width, config.crop.resize_height, config.output.mode,
        )

    except Exception as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    # 2. Initialize Components
    try:
        cropper = Cropper(config)
        input_handler = InputHandler(
            source=config.input.source,
            auto_orient=config.input.auto_orient,
        )
        output_handler = OutputHandler(config)

    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error("Could not start: %s", e)
        return 1
    except Exception as e:
        logger.exception("Unexpected error while starting: %s", e)
        return 1

    # 3. Processing Loop
    logger.info("Starting processing loop over %d image(s).", len(input_handler))

    image_count = 0
    failed = 0
    start_time = time.perf_counter()

    try:
        for image_id, path, image in input_handler:
            try:
                box = cropper.find_crop(image)
                output_handler.process_image(image_id, path, image, box)
            except (SmartclipError, RuntimeError, cv2.error) as e:
                if config.output.whiny:
                    raise
                failed += 1
                logger.warning("Skipping %s: %s", path, e)
                continue

            image_count += 1

            if image_count % 25 == 0:
                logger.info("Processed %d images...", image_count)

    except KeyboardInterrupt:
        logger.info("Stopped by user.")
    except Exception as e:
        logger.exception("Cropping aborted: %s", e)
        return 1
    finally:
        # 4. Cleanup
        elapsed = time.perf_counter() - start_time
        output_handler.finalize()

        logger.info(
            "Processing finished. Images: %d, skipped: %d, elapsed: %.2fs.",
            image_count, failed, elapsed,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
