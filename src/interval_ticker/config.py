"""
Configuration loading for the interval-ticker daemon.

Configuration is a TOML file with these sections (all optional):

    [ticker]
    period_ms = 1000

    [heartbeat]
    enabled = true
    log_every = 1        # log every Nth tick

    [output]
    health_port = 8080   # 0 disables the health server
    bind_address = "127.0.0.1"
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import toml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    'ticker': {
        'period_ms': 1000,
    },
    'heartbeat': {
        'enabled': True,
        'log_every': 1,
    },
    'output': {
        'health_port': 8080,
        'bind_address': '127.0.0.1',
    },
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a TOML file, filling gaps from DEFAULT_CONFIG.

    Args:
        config_path: Path to TOML file; defaults are returned when None

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: config_path was given but does not exist
        toml.TomlDecodeError: the file is not valid TOML
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not config_path:
        return config

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, 'r') as f:
        loaded = toml.load(f)
    logger.info(f"Loaded configuration from {path}")

    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values

    return config
