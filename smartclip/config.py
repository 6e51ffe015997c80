"""
Configuration management for the smart thumbnail cropper.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - Crop tuning values are strictly typed: unknown keys and
      non-numeric values are rejected, never coerced.
    - No analysis logic, I/O, or image decoding belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
import re
from dataclasses import dataclass, field, fields
from numbers import Real
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: smartclip/config.py → project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

_INT_FIELDS = {"resize_width", "resize_height", "score_down_sample", "step"}


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


@dataclass(frozen=True)
class CropConfig:
    """Tuning values for saliency analysis and crop search.

    Attributes:
        resize_width: Target thumbnail width in pixels.
        resize_height: Target thumbnail height in pixels.
        detail_weight: Weight of the edge/detail score in the total.
        skin_color: Reference skin color as a unit RGB direction.
        skin_bias: Detail bias added when weighting skin cells.
        skin_brightness_min: Lower luma bound (0-1) for skin pixels.
        skin_brightness_max: Upper luma bound (0-1) for skin pixels.
        skin_threshold: Minimum skin likeness to count a pixel.
        skin_weight: Weight of the skin score in the total.
        saturation_brightness_min: Lower luma bound for saturated pixels.
        saturation_brightness_max: Upper luma bound for saturated pixels.
        saturation_threshold: Minimum HSL saturation to count a pixel.
        saturation_bias: Detail bias added when weighting saturated cells.
        saturation_weight: Weight of the saturation score in the total.
        score_down_sample: Block size of the downsampling pass.
        step: Candidate origin step in analysis pixels.
        scale_step: Decrement between candidate scales.
        min_scale: Smallest candidate scale (may be raised by derivation).
        max_scale: Largest candidate scale.
        edge_radius: Fraction of the crop near its border that is penalized.
        edge_weight: Penalty multiplier for detail near crop borders.
        outside_importance: Importance of samples outside the crop.
        boost_weight: Weight of the boost channel in the total.
    """

    resize_width: int = 210
    resize_height: int = 210
    detail_weight: float = 0.2
    skin_color: Tuple[float, float, float] = (0.78, 0.57, 0.44)
    skin_bias: float = 0.01
    skin_brightness_min: float = 0.2
    skin_brightness_max: float = 1.0
    skin_threshold: float = 0.8
    skin_weight: float = 1.8
    saturation_brightness_min: float = 0.05
    saturation_brightness_max: float = 0.9
    saturation_threshold: float = 0.4
    saturation_bias: float = 0.2
    saturation_weight: float = 0.1
    score_down_sample: int = 8
    step: int = 8
    scale_step: float = 0.1
    min_scale: float = 1.0
    max_scale: float = 1.0
    edge_radius: float = 0.4
    edge_weight: float = -20.0
    outside_importance: float = -0.5
    boost_weight: float = 100.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)

            if f.name == "skin_color":
                if not isinstance(value, (list, tuple)) or len(value) != 3:
                    raise TypeError(
                        f"crop.skin_color must be a sequence of 3 numbers, got {value!r}."
                    )
                if not all(_is_number(v) for v in value):
                    raise TypeError(
                        f"crop.skin_color values must be numeric, got {value!r}."
                    )
                object.__setattr__(self, f.name, tuple(float(v) for v in value))
            elif f.name in _INT_FIELDS:
                if not isinstance(value, int) or isinstance(value, bool):
                    raise TypeError(
                        f"crop.{f.name} must be an integer, got {value!r}."
                    )
            else:
                if not _is_number(value):
                    raise TypeError(
                        f"crop.{f.name} must be numeric, got {value!r}."
                    )
                object.__setattr__(self, f.name, float(value))

        _validate_crop(self)

    @classmethod
    def from_overrides(cls, overrides: Optional[Mapping[str, Any]] = None) -> "CropConfig":
        """Merge caller overrides onto the defaults.

        Raises:
            ValueError: If an override names an unknown key or a value is
                out of range.
            TypeError: If an override value has the wrong type.
        """
        overrides = dict(overrides or {})
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(
                f"Unknown crop option(s): {sorted(unknown)}. "
                f"Valid options: {sorted(known)}."
            )
        return cls(**overrides)


@dataclass(frozen=True)
class InputConfig:
    """Input source configuration.

    Attributes:
        source: Path to a single image file or a directory of images.
        analysis_size: Short-side size images are prescaled to before
                       analysis. Images already smaller are analyzed as-is.
        auto_orient: Apply EXIF orientation when decoding.
    """

    source: str = "input/"
    analysis_size: int = 256
    auto_orient: bool = True


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        mode: Output mode(s). Supports multiple comma-separated values:
              'save_image', 'save_debug', 'save_json', 'save_csv'.
              Example: "save_image,save_json"
        save_path: Directory where output artifacts are written.
        background_color: Hex color used to pad thumbnails smaller than
                          the target size.
        optimize_format: Pick JPEG for opaque images and PNG otherwise.
        jpeg_quality: JPEG quality used when writing optimized thumbnails.
        whiny: Abort the run on the first image that fails to process.
    """

    mode: str = "save_image"
    save_path: str = "output/"
    background_color: str = "#222222"
    optimize_format: bool = True
    jpeg_quality: int = 60
    whiny: bool = True


@dataclass(frozen=True)
class VisualizationConfig:
    """Debug overlay rendering parameters.

    Attributes:
        box_color: BGR color tuple for the crop rectangle.
        thickness: Line thickness in pixels.
        show_score: Whether to render the total score label.
    """

    box_color: Tuple[int, int, int] = (0, 255, 0)
    thickness: int = 2
    show_score: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    crop: CropConfig = field(default_factory=CropConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_OUTPUT_MODES = {"save_image", "save_debug", "save_json", "save_csv"}
_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")


def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """Convert '#RRGGBB' into a BGR tuple.

    Raises:
        ValueError: If the value is not a 6-digit hex color.
    """
    match = _HEX_COLOR.match(value.strip())
    if match is None:
        raise ValueError(
            f"Invalid color '{value}'. Expected a hex color like '#222222'."
        )
    digits = match.group(1)
    r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
    return (b, g, r)


def _validate_crop(crop: CropConfig) -> None:
    """Validate crop tuning values. Raises ValueError on invalid state."""

    if crop.resize_width <= 0 or crop.resize_height <= 0:
        raise ValueError(
            f"crop.resize_width and crop.resize_height must be positive, "
            f"got {crop.resize_width}x{crop.resize_height}."
        )

    if crop.score_down_sample < 1:
        raise ValueError(
            f"crop.score_down_sample must be >= 1, got {crop.score_down_sample}."
        )

    if crop.step <= 0:
        raise ValueError(f"crop.step must be positive, got {crop.step}.")

    if crop.scale_step <= 0:
        raise ValueError(
            f"crop.scale_step must be positive, got {crop.scale_step}."
        )

    if not (0.0 < crop.min_scale <= crop.max_scale):
        raise ValueError(
            f"crop scales must satisfy 0 < min_scale <= max_scale, "
            f"got min_scale={crop.min_scale}, max_scale={crop.max_scale}."
        )

    if not (0.0 < crop.skin_threshold <= 1.0):
        raise ValueError(
            f"crop.skin_threshold must be in (0.0, 1.0], got {crop.skin_threshold}."
        )

    if not (0.0 <= crop.saturation_threshold < 1.0):
        raise ValueError(
            f"crop.saturation_threshold must be in [0.0, 1.0), "
            f"got {crop.saturation_threshold}."
        )

    if crop.skin_brightness_min > crop.skin_brightness_max:
        raise ValueError(
            f"crop.skin_brightness_min ({crop.skin_brightness_min}) exceeds "
            f"crop.skin_brightness_max ({crop.skin_brightness_max})."
        )

    if crop.saturation_brightness_min > crop.saturation_brightness_max:
        raise ValueError(
            f"crop.saturation_brightness_min ({crop.saturation_brightness_min}) "
            f"exceeds crop.saturation_brightness_max "
            f"({crop.saturation_brightness_max})."
        )


def _validate(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    # Validate each mode in comma-separated list
    modes = set(m.strip() for m in config.output.mode.split(','))
    invalid_modes = modes - _VALID_OUTPUT_MODES
    if invalid_modes:
        raise ValueError(
            f"Invalid output.mode(s): {invalid_modes}. "
            f"Valid modes: {_VALID_OUTPUT_MODES}. "
            f"Use comma-separated values for multiple outputs."
        )

    parse_hex_color(config.output.background_color)

    if not (1 <= config.output.jpeg_quality <= 100):
        raise ValueError(
            f"output.jpeg_quality must be in [1, 100], "
            f"got {config.output.jpeg_quality}."
        )

    if config.input.analysis_size <= 0:
        raise ValueError(
            f"input.analysis_size must be positive, "
            f"got {config.input.analysis_size}."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    return value


def _parse_bool(value) -> bool:
    """Accept YAML booleans as well as 'true'/'false' strings from the env."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _build_crop_config(raw: dict) -> CropConfig:
    """Build CropConfig from a raw YAML dict without coercing values."""
    return CropConfig.from_overrides(raw)


def _build_input_config(raw: dict) -> InputConfig:
    """Build InputConfig from a raw YAML dict."""
    kwargs = {}
    if "source" in raw:
        kwargs["source"] = str(raw["source"])
    if "analysis_size" in raw:
        kwargs["analysis_size"] = int(raw["analysis_size"])
    if "auto_orient" in raw:
        kwargs["auto_orient"] = _parse_bool(raw["auto_orient"])
    return InputConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    """Build OutputConfig from a raw YAML dict."""
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = str(raw["mode"]).lower()
    if "save_path" in raw:
        kwargs["save_path"] = str(raw["save_path"])
    if "background_color" in raw:
        kwargs["background_color"] = str(raw["background_color"])
    if "optimize_format" in raw:
        kwargs["optimize_format"] = _parse_bool(raw["optimize_format"])
    if "jpeg_quality" in raw:
        kwargs["jpeg_quality"] = int(raw["jpeg_quality"])
    if "whiny" in raw:
        kwargs["whiny"] = _parse_bool(raw["whiny"])
    return OutputConfig(**kwargs)


def _build_visualization_config(raw: dict) -> VisualizationConfig:
    """Build VisualizationConfig from a raw YAML dict."""
    kwargs = {}
    if "box_color" in raw:
        kwargs["box_color"] = _parse_tuple(raw["box_color"], 3, int)
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    if "show_score" in raw:
        kwargs["show_score"] = _parse_bool(raw["show_score"])
    return VisualizationConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "SMARTCLIP_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        SMARTCLIP_CROP_MIN_SCALE=0.8
        SMARTCLIP_OUTPUT_MODE=save_image,save_json

    Crop values are parsed as YAML scalars so that numbers arrive typed;
    a value that does not parse to a number is rejected by CropConfig.
    """
    env_map = {
        f"{_ENV_PREFIX}CROP_{f.name.upper()}": ("crop", f.name)
        for f in fields(CropConfig)
    }
    env_map.update({
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}INPUT_ANALYSIS_SIZE": ("input", "analysis_size"),
        f"{_ENV_PREFIX}INPUT_AUTO_ORIENT": ("input", "auto_orient"),
        f"{_ENV_PREFIX}OUTPUT_MODE": ("output", "mode"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
        f"{_ENV_PREFIX}OUTPUT_BACKGROUND_COLOR": ("output", "background_color"),
        f"{_ENV_PREFIX}OUTPUT_OPTIMIZE_FORMAT": ("output", "optimize_format"),
        f"{_ENV_PREFIX}OUTPUT_WHINY": ("output", "whiny"),
    })

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            if section == "crop":
                value = yaml.safe_load(value)
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


def _apply_overrides(raw: dict, overrides: Mapping[str, Mapping[str, Any]]) -> dict:
    """Layer explicit per-section overrides (e.g. from the CLI) onto raw."""
    for section, values in overrides.items():
        for key, value in values.items():
            if value is not None:
                raw.setdefault(section, {})[key] = value
                logger.debug("Config override: %s.%s=%s", section, key, value)
    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Explicit overrides > Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults (safe for
                     programmatic usage).
        overrides: Optional mapping of section → {key: value}, typically
                   built from CLI arguments. None values are ignored.

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid or unknown.
        TypeError: If a crop value is not numeric.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: Dict[str, Any] = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Layer 3: Explicit overrides ---
    if overrides:
        raw = _apply_overrides(raw, overrides)

    # --- Build typed configs ---
    config = AppConfig(
        crop=_build_crop_config(raw.get("crop", {})),
        input=_build_input_config(raw.get("input", {})),
        output=_build_output_config(raw.get("output", {})),
        visualization=_build_visualization_config(raw.get("visualization", {})),
    )

    # --- Validate ---
    _validate(config)

    logger.debug("Configuration loaded: %s", config)
    return config
