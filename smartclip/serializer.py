"""
Serialization for the smart-crop pipeline.

Responsibility:
    Export chosen crops to structured file formats (JSON, CSV) for
    downstream consumption or offline analysis.

Non-goals:
    - No rendering or crop logic.
    - No streaming output — writes complete files on finalize.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, Tuple

from smartclip.crop import CropBox

logger = logging.getLogger(__name__)

# image_id → (source path, chosen crop)
CropRecords = Dict[int, Tuple[str, CropBox]]


def save_json(records: CropRecords, output_path: str) -> None:
    """Export all crops to a JSON file.

    Output schema:
        {
            "images": [
                {
                    "image_id": 0,
                    "source": "photos/a.jpg",
                    "crop": {"x": ..., "y": ..., "width": ..., "height": ..., "score": ...},
                    "breakdown": {"detail": ..., "saturation": ..., "skin": ..., "boost": ..., "total": ...}
                }
            ],
            "total_images": N
        }

    Args:
        records: Mapping of image_id → (source path, CropBox).
        output_path: Path to the output JSON file.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    images = []
    for image_id in sorted(records.keys()):
        source, box = records[image_id]
        images.append({
            "image_id": image_id,
            "source": source,
            "crop": box.to_dict(),
            "breakdown": box.score.to_dict(),
        })

    payload = {
        "images": images,
        "total_images": len(images),
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info("JSON output saved: %s (%d images)", output_path, len(images))


def save_csv(records: CropRecords, output_path: str) -> None:
    """Export all crops to a CSV file.

    Columns: image_id, source, x, y, width, height, score

    Args:
        records: Mapping of image_id → (source path, CropBox).
        output_path: Path to the output CSV file.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    fieldnames = ["image_id", "source", "x", "y", "width", "height", "score"]

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        for image_id in sorted(records.keys()):
            source, box = records[image_id]
            writer.writerow({
                "image_id": image_id,
                "source": source,
                **box.to_dict(),
            })

    logger.info("CSV output saved: %s (%d rows)", output_path, len(records))


def _ensure_parent_dir(path: str) -> None:
    """Create parent directories if they don't exist."""
    parent = Path(path).parent
    parent.mkdir(parents=True, exist_ok=True)
