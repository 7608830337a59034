"""
Configuration loader for the Rectification module.

Loads and validates configuration from config.yaml file.
"""

import logging
from pathlib import Path
from typing import Any, Dict

import cv2
import yaml

from dualmark.markers.types import DecoderHints
from dualmark.rectification.types import (
    DecoderConfig,
    OutputConfig,
    RectificationConfig,
    RelocationConfig,
    RemapConfig,
)

logger = logging.getLogger(__name__)

# Default configuration path (relative to this file)
DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

INTERPOLATION_FLAGS = {
    "linear": cv2.INTER_LINEAR,
    "cubic": cv2.INTER_CUBIC,
    "nearest": cv2.INTER_NEAREST,
    "area": cv2.INTER_AREA,
    "lanczos": cv2.INTER_LANCZOS4,
}


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> RectificationConfig:
    """
    Load rectification configuration from YAML file.

    Args:
        config_path: Path to the configuration YAML file.

    Returns:
        Validated RectificationConfig object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config is invalid or missing required fields.

    Example:
        >>> config = load_config()
        >>> print(config.relocation.search_fraction)
        0.1
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.debug(f"Loading rectification config from {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    try:
        config = _parse_config(raw_config)
        _validate_config(config)
        logger.info("Successfully loaded rectification configuration")
        return config
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid configuration file: {e}") from e


def _parse_config(raw: Dict[str, Any]) -> RectificationConfig:
    """Parse raw dictionary into structured config objects."""
    return RectificationConfig(
        remap=RemapConfig(
            flip_rotations=[int(r) for r in raw["remap"]["flip_rotations"]],
        ),
        relocation=RelocationConfig(
            search_fraction=float(raw["relocation"]["search_fraction"]),
            min_points=int(raw["relocation"]["min_points"]),
        ),
        output=OutputConfig(
            view_width=int(raw["output"]["view_width"]),
            view_height=int(raw["output"]["view_height"]),
            resize_to_view=bool(raw["output"]["resize_to_view"]),
            interpolation=str(raw["output"]["interpolation"]),
        ),
        decoder=DecoderConfig(
            try_harder=bool(raw["decoder"]["try_harder"]),
            upscale_factor=float(raw["decoder"]["upscale_factor"]),
        ),
    )


def _validate_config(config: RectificationConfig) -> None:
    """
    Validate configuration values for logical consistency.

    Raises:
        ValueError: If any configuration value is invalid.
    """
    for rotation in config.remap.flip_rotations:
        if rotation not in (0, 90, 180, 270):
            raise ValueError(
                f"flip_rotations entries must be 0, 90, 180 or 270, got {rotation}"
            )

    if not 0 < config.relocation.search_fraction <= 1:
        raise ValueError("search_fraction must be in (0, 1]")

    if config.relocation.min_points < 6 or config.relocation.min_points % 2 != 0:
        raise ValueError("min_points must be an even number of at least 6")

    if config.output.view_width < 1 or config.output.view_height < 1:
        raise ValueError("view_width and view_height must be at least 1")

    if config.output.interpolation not in INTERPOLATION_FLAGS:
        raise ValueError(
            f"Invalid interpolation: {config.output.interpolation}. "
            f"Must be one of {list(INTERPOLATION_FLAGS)}"
        )

    if config.decoder.upscale_factor <= 1:
        raise ValueError("upscale_factor must be greater than 1")

    logger.debug("Configuration validation passed")


def decoder_hints(config: RectificationConfig) -> DecoderHints:
    """Build decoder hints from the decoder section."""
    return DecoderHints(
        qr_only=True,
        try_harder=config.decoder.try_harder,
        upscale_factor=config.decoder.upscale_factor,
    )
