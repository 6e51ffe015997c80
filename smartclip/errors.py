"""
Error taxonomy for the smart-crop engine.

Detector and downsample passes have no failure modes of their own; only
input validation and the candidate search can fail.
"""


class SmartclipError(Exception):
    """Base class for all smart-crop errors."""


class InputShapeError(SmartclipError, ValueError):
    """Pixel buffer length does not match the declared width x height."""


class DegenerateSearchError(SmartclipError, RuntimeError):
    """No candidate rectangle fits the image within the scale/step bounds."""


class NumericDegeneracyWarning(RuntimeWarning):
    """Skin likeness is undefined for zero-magnitude (pure black) pixels."""
