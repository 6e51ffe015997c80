"""
Postprocessing for the smart-crop pipeline.

Responsibility:
    Map the winning Crop from analysis (prescaled) coordinates back onto
    the source image, rounding to whole pixels and clamping to the frame.

Non-goals:
    - No drawing, saving, or resizing.
    - No scoring or search.
"""

from smartclip.crop import Crop, CropBox


def to_source_box(
    crop: Crop,
    prescale: float,
    frame_width: int,
    frame_height: int,
) -> CropBox:
    """Convert an analysis-space Crop into a source-space CropBox.

    Args:
        crop: Winning crop in analysis coordinates.
        prescale: Factor the analysis image was shrunk by (<= 1).
        frame_width: Source image width in pixels.
        frame_height: Source image height in pixels.

    Returns:
        A CropBox that lies fully inside the source frame and is at
        least one pixel wide and tall.
    """
    x = int(crop.x / prescale)
    y = int(crop.y / prescale)
    width = int(round(crop.width / prescale))
    height = int(round(crop.height / prescale))

    # Clamp to frame boundaries
    x = max(0, min(x, frame_width - 1))
    y = max(0, min(y, frame_height - 1))
    width = max(1, min(width, frame_width - x))
    height = max(1, min(height, frame_height - y))

    return CropBox(x=x, y=y, width=width, height=height, score=crop.score)
