"""
Configuration settings for the ADS-B Braille Radar application
"""

import copy
import logging
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# Feed Configuration
FEED_CONFIG = {
    # api.adsb.lol point query, filled in with origin and radius
    'api_url': 'https://api.adsb.lol/v2/point/{lat}/{lon}/{radius}',
    'request_timeout': None,  # seconds, None = use the poll interval
}

# Radar Configuration
RADAR_CONFIG = {
    'airport': None,           # airport code from adsb_api.AIRPORTS, overrides lat/lon
    'latitude': 37.6191,
    'longitude': -122.3816,
    'radius': 50.0,            # nautical miles from center to the wider screen edge

    'poll_interval': 1.0,      # seconds between feed requests
    'frame_interval': 0.25,    # seconds between frames
    'input_interval': 0.1,     # seconds to wait for a key before rechecking shutdown

    'label_label_force': 4.0,
    'label_point_force': 4.0,
    'label_snap_radius': 2.0,  # cells

    'history_capacity': 20,    # snapshots kept in the rolling history
}

# Terminal Display Configuration
DISPLAY_CONFIG = {
    'title': 'ADS-B Radar',
    'use_colors': True,
    'colors': {
        'border': 'blue',
        'title': 'white',
        'marker': 'cyan',
        'label': 'yellow',
        'center': 'green',
    },
    'log_file': 'adsb_radar.log',
}

DEFAULT_CONFIG_FILE = 'config.yaml'


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay overrides onto base, descending into nested dicts"""
    result = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: Optional[str] = DEFAULT_CONFIG_FILE) -> Dict[str, Dict[str, Any]]:
    """
    Load settings from a YAML file on top of the built-in defaults.

    The file may contain 'feed', 'radar' and 'display' sections; any key left
    out keeps its default. A missing file yields the defaults unchanged.

    Args:
        path: YAML file to read, or None to skip reading

    Returns:
        Dictionary with 'feed', 'radar' and 'display' sections
    """
    settings = {
        'feed': copy.deepcopy(FEED_CONFIG),
        'radar': copy.deepcopy(RADAR_CONFIG),
        'display': copy.deepcopy(DISPLAY_CONFIG),
    }
    if path is None:
        return settings

    try:
        with open(path, 'r') as file:
            loaded = yaml.safe_load(file) or {}
    except FileNotFoundError:
        logger.info(f"No config file at {path}, using defaults")
        return settings

    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    for section in settings:
        overrides = loaded.get(section) or {}
        if not isinstance(overrides, dict):
            raise ValueError(f"Section '{section}' in {path} must be a mapping")
        settings[section] = _merge(settings[section], overrides)

    logger.info(f"Loaded config from {path}")
    return settings
