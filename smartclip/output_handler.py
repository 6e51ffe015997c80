"""
Output handling for the smart-crop pipeline.

Responsibility:
    Route crop results to configured output sinks: rendered thumbnails,
    debug overlays, JSON, or CSV. Supports multiple orthogonal outputs
    simultaneously.

Non-goals:
    - No crop search logic.
    - No input acquisition.
"""

import logging
from pathlib import Path
from typing import Optional, Set

import cv2
import numpy as np

from smartclip.config import AppConfig, get_project_root, parse_hex_color
from smartclip.crop import CropBox
from smartclip.serializer import CropRecords, save_csv, save_json
from smartclip.thumbnailer import (
    choose_extension,
    encode_params,
    prepare_for_encoding,
    render_thumbnail,
)
from smartclip.visualizer import draw_crop

logger = logging.getLogger(__name__)


class OutputHandler:
    """Routes crop results to configured output sinks.

    Supports orthogonal outputs - multiple modes can be active simultaneously:
        - 'save_image': Write the rendered thumbnail.
        - 'save_debug': Write the source image with the crop drawn on it.
        - 'save_json': Accumulate crops, write JSON on finalize.
        - 'save_csv': Accumulate crops, write CSV on finalize.

    Usage:
        handler = OutputHandler(config)
        handler.process_image(image_id, path, image, box)
        ...
        handler.finalize()  # Flush any buffered output
    """

    def __init__(self, config: AppConfig) -> None:
        """Initialize the output handler.

        Args:
            config: Application configuration (output mode, paths, target size).
        """
        self._config = config
        self._background = parse_hex_color(config.output.background_color)

        # Parse output modes (comma-separated for multiple outputs)
        mode_str = config.output.mode
        self._modes: Set[str] = set(m.strip() for m in mode_str.split(','))

        # Output files written during this run
        self._written: Set[Path] = set()

        # Buffer for serialization modes
        self._records: CropRecords = {}

        # Resolve output path
        save_path = Path(config.output.save_path)
        if not save_path.is_absolute():
            save_path = get_project_root() / save_path
        self._save_path = save_path

        self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info("OutputHandler initialized: modes=%s, save_path=%s",
                    self._modes, self._save_path)

    def process_image(
        self,
        image_id: int,
        source_path: str,
        image: np.ndarray,
        box: CropBox,
    ) -> Optional[Path]:
        """Process a single image's crop through the output pipeline.

        Args:
            image_id: Image index.
            source_path: Path the image was read from.
            image: Decoded source image (BGR or BGRA).
            box: Chosen crop in source coordinates.

        Returns:
            Path of the written thumbnail, or None if thumbnails are
            not being saved.
        """
        written = None

        if 'save_image' in self._modes:
            written = self._handle_save_image(image_id, source_path, image, box)

        if 'save_debug' in self._modes:
            self._handle_save_debug(image_id, source_path, image, box)

        # Buffer for JSON/CSV
        if 'save_json' in self._modes or 'save_csv' in self._modes:
            self._records[image_id] = (source_path, box)

        return written

    def _handle_save_image(
        self,
        image_id: int,
        source_path: str,
        image: np.ndarray,
        box: CropBox,
    ) -> Path:
        """Render and write the thumbnail."""
        crop_cfg = self._config.crop
        out_cfg = self._config.output

        thumbnail = render_thumbnail(
            image, box, crop_cfg.resize_width, crop_cfg.resize_height, self._background
        )
        extension = choose_extension(image, source_path, out_cfg.optimize_format)
        thumbnail = prepare_for_encoding(thumbnail, extension)
        params = encode_params(extension, out_cfg.optimize_format, out_cfg.jpeg_quality)

        output_file = self._unique_output_file(image_id, source_path, extension)
        if not cv2.imwrite(str(output_file), thumbnail, params):
            raise RuntimeError(f"Failed to write thumbnail: {output_file}")

        logger.debug("Saved thumbnail for %s to %s", source_path, output_file)
        return output_file

    def _unique_output_file(self, image_id: int, source_path: str, suffix: str) -> Path:
        """Name an output after its source, never reusing a name in one run.

        Sources that share a stem (a.png, a.jpg) would map to the same
        file; later ones get the image id appended.
        """
        stem = Path(source_path).stem
        output_file = self._save_path / f"{stem}{suffix}"
        if output_file in self._written:
            renamed = self._save_path / f"{stem}_{image_id}{suffix}"
            logger.warning(
                "Output name %s already used in this run; writing %s to %s",
                output_file.name, source_path, renamed.name,
            )
            output_file = renamed

        self._written.add(output_file)
        return output_file

    def _handle_save_debug(
        self,
        image_id: int,
        source_path: str,
        image: np.ndarray,
        box: CropBox,
    ) -> None:
        """Write the source image annotated with the chosen crop."""
        annotated = draw_crop(image, box, self._config.visualization)
        output_file = self._unique_output_file(image_id, source_path, "_crop.jpg")
        cv2.imwrite(str(output_file), annotated)
        logger.debug("Saved debug overlay for %s to %s", source_path, output_file)

    def finalize(self) -> None:
        """Flush buffered output.

        Must be called after all images have been processed.
        """
        if 'save_json' in self._modes and self._records:
            output_file = str(self._save_path / "crops.json")
            save_json(self._records, output_file)

        if 'save_csv' in self._modes and self._records:
            output_file = str(self._save_path / "crops.csv")
            save_csv(self._records, output_file)

        self._records.clear()
        logger.info("OutputHandler finalized.")
