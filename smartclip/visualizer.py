"""
Debug visualization for the smart-crop pipeline.

Responsibility:
    Draw the chosen crop rectangle and an optional score label onto a
    copy of the source image. This is a pure rendering module and
    performs no I/O.

Non-goals:
    - No file writing, window management, or display logic.
    - No scoring or search logic.
"""

import cv2
import numpy as np

from smartclip.config import VisualizationConfig
from smartclip.crop import CropBox

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LABEL_PADDING = 4


def draw_crop(
    image: np.ndarray,
    box: CropBox,
    config: VisualizationConfig,
) -> np.ndarray:
    """Draw the crop rectangle and score label onto an image.

    Args:
        image: Input GRAY, BGR or BGRA image (not modified; a copy is returned).
        box: Crop to render.
        config: Visualization parameters (color, thickness, labels).

    Returns:
        A new BGR numpy array with the crop drawn.
    """
    if image.ndim == 2:
        annotated = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    elif image.shape[2] == 4:
        annotated = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    else:
        annotated = image.copy()

    cv2.rectangle(
        annotated,
        (box.x, box.y),
        (box.x2 - 1, box.y2 - 1),
        color=config.box_color,
        thickness=config.thickness,
    )

    if config.show_score:
        label = f"{box.score.total:.4f}"
        (text_w, text_h), baseline = cv2.getTextSize(
            label, _FONT, _FONT_SCALE, _FONT_THICKNESS
        )

        # Label inside the top-left corner of the crop
        label_y = box.y + text_h + _LABEL_PADDING

        cv2.rectangle(
            annotated,
            (box.x, box.y),
            (box.x + text_w + _LABEL_PADDING, label_y + _LABEL_PADDING),
            color=config.box_color,
            thickness=cv2.FILLED,
        )

        cv2.putText(
            annotated,
            label,
            (box.x + _LABEL_PADDING // 2, label_y),
            _FONT,
            _FONT_SCALE,
            (0, 0, 0),  # Black text on colored background
            _FONT_THICKNESS,
            cv2.LINE_AA,
        )

    return annotated
