"""Configuration file loader with validation"""

import yaml
import os
from pathlib import Path
from typing import Dict, Any, Optional
from .errors import ConfigurationError
from spendcore.models.settings import DetectionSettings

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "defaults.yaml"

REQUIRED_KEYS = ['version', 'categories', 'rules', 'anomaly_detection']


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load YAML configuration file with validation.
    Falls back to SPENDCORE_CONFIG, then to the packaged defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Dictionary with configuration

    Raises:
        ConfigurationError: If file doesn't exist or invalid YAML
    """
    if config_path is None:
        config_path = os.getenv("SPENDCORE_CONFIG") or str(DEFAULT_CONFIG_PATH)

    config_file = Path(config_path)

    if not config_file.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
    except OSError as e:
        raise ConfigurationError(f"Error loading configuration: {e}")

    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

    # Validate required keys
    missing_keys = [key for key in REQUIRED_KEYS if key not in config]

    if missing_keys:
        raise ConfigurationError(f"Missing required configuration keys: {missing_keys}")

    return config


def save_config(config_path: str, config: Dict[str, Any]) -> None:
    """
    Save configuration to YAML file

    Args:
        config_path: Path to configuration file
        config: Configuration dictionary

    Raises:
        ConfigurationError: If unable to write file
    """
    try:
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w') as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)

    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Error saving configuration: {e}")


def get_detection_settings(config: Dict[str, Any]) -> DetectionSettings:
    """
    Build typed anomaly detection settings from the configuration

    Args:
        config: Full configuration dictionary

    Returns:
        DetectionSettings with defaults for anything not configured
    """
    section = config.get('anomaly_detection') or {}
    outlier = section.get('statistical_outlier') or {}
    duplicate = section.get('duplicate_signal') or {}
    large = section.get('large_amount') or {}

    values = {
        'sigma': outlier.get('sigma'),
        'high_severity_sigma': outlier.get('high_severity_sigma'),
        'baseline': outlier.get('baseline'),
        'duplicate_window_days': duplicate.get('window_days'),
    }
    values = {k: v for k, v in values.items() if v is not None}

    # An explicit null disables the large amount detector
    if 'threshold' in large:
        values['large_amount_threshold'] = large['threshold']

    try:
        return DetectionSettings(**values)
    except ValueError as e:
        raise ConfigurationError(f"Invalid anomaly_detection settings: {e}")
