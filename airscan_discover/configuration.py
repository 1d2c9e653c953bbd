# airscan_discover/configuration.py

"""
Configuration loader for airscan-discover.

Handles loading settings from airscan-discover.yaml. If the file doesn't
exist, it creates one with default values.
"""

import os
import sys
import yaml
from typing import Dict, Any, Optional

CONFIG_ENV_VAR = 'AIRSCAN_DISCOVER_CONFIG'

# This dictionary holds the default structure and values for our config.
# It will be used to generate the initial airscan-discover.yaml.
DEFAULT_CONFIG = {
    'discovery_window_ms': 2500,
    'probe_interval_ms': 250,
    'metadata_timeout_seconds': 2.0,
    'receive_buffer_size': 32768,
    'receive_poll_seconds': 0.2,
    'enable_wsd': True,
    'enable_dnssd': True,
    'dnssd_service_type': '_uscan._tcp.local.',
    # Path of a tar archive receiving raw protocol messages, or null
    'trace_file': None,
}

_HEADER = (
    "# airscan-discover Configuration File\n"
    "# You can edit these settings. They are used on the next run.\n\n"
)


def get_config_path() -> str:
    """Returns the path to the config file."""
    return os.environ.get(CONFIG_ENV_VAR, "airscan-discover.yaml")


def load_or_create_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads configuration from the config file.

    If the file doesn't exist, it creates it with default values.
    If the file is invalid, it reports the error and exits.
    """
    config_path = config_path or get_config_path()
    try:
        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f)

        # Merge user config with defaults to ensure all keys are present
        config = DEFAULT_CONFIG.copy()
        if isinstance(user_config, dict):
            config.update(user_config)
        return config

    except FileNotFoundError:
        print(f"Configuration file not found. Creating '{config_path}' with default settings.", file=sys.stderr)
        try:
            with open(config_path, 'w') as f:
                f.write(_HEADER)
                yaml.dump(DEFAULT_CONFIG, f, sort_keys=False, default_flow_style=False, indent=2)
        except IOError as e:
            # Not being able to persist the defaults is no reason to stop
            print(f"WARNING: Could not write default config file to '{config_path}': {e}", file=sys.stderr)
        return DEFAULT_CONFIG.copy()

    except yaml.YAMLError as e:
        print(f"FATAL: Error parsing '{config_path}': {e}", file=sys.stderr)
        sys.exit(1)
