"""Configuration persistence manager for kernelkit.

This module handles loading and saving of the processing options to/from
JSON files.
"""

import json
import logging
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from .errors import ConfigurationError
from .models import (
    CONFIG_FILE,
    CannyOptions,
    ConvolutionOptions,
    GaussianOptions,
    ProcessingConfig,
    SegmentationOptions,
)

logger = logging.getLogger(__name__)


def _to_json(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json(item) for item in value]
    return value


def config_from_dict(data: dict) -> ProcessingConfig:
    """Build a ProcessingConfig from plain JSON data.

    Missing sections and keys fall back to their defaults.

    Raises:
        ConfigurationError: If a value is invalid or a key is unknown
    """
    try:
        canny_data = dict(data.get("canny", {}))
        gaussian_for_canny = GaussianOptions(**canny_data.pop("gaussian", {}))
        return ProcessingConfig(
            convolution=ConvolutionOptions(**data.get("convolution", {})),
            gaussian=GaussianOptions(**data.get("gaussian", {})),
            canny=CannyOptions(gaussian=gaussian_for_canny, **canny_data),
            segmentation=SegmentationOptions(**data.get("segmentation", {})),
            color_depth=data.get("color_depth", ProcessingConfig.color_depth),
        )
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration layout: {e}") from e


class ConfigManager:
    """Handles loading and saving of processing configuration."""

    def __init__(self, config_path: Path = CONFIG_FILE):
        """Initialize config manager.

        Args:
            config_path: Path to configuration file (defaults to ~/.kernelkit_config.json)
        """
        self.config_path = Path(config_path)

    def load(self) -> ProcessingConfig:
        """Load configuration from file, returning defaults if not found.

        An unreadable or invalid file is reported and ignored as a whole, so
        the result is never a mix of file values and defaults.

        Returns:
            ProcessingConfig with loaded or default values
        """
        if not self.config_path.exists():
            return ProcessingConfig()

        try:
            with open(self.config_path, "r") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ConfigurationError("Top level of the config file must be an object")
            config = config_from_dict(data)
        except (OSError, json.JSONDecodeError, ConfigurationError) as e:
            logger.warning("Could not load config file %s: %s", self.config_path, e)
            return ProcessingConfig()

        logger.info("Loaded configuration from %s", self.config_path)
        return config

    def save(self, config: ProcessingConfig) -> Tuple[bool, Optional[str]]:
        """Save configuration to file.

        Args:
            config: ProcessingConfig to save

        Returns:
            Tuple of (success: bool, error_message: Optional[str])
        """
        try:
            with open(self.config_path, "w") as f:
                json.dump(_to_json(asdict(config)), f, indent=2)
            return True, None
        except OSError as e:
            return False, str(e)
