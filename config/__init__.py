"""Configuration system for the inflation forecaster.

The YAML file ``pipeline.yaml`` next to this module holds the defaults for
data retrieval, the train/test cutoff, the lag structure and the report
output locations.
"""

from .config_manager import (
    ConfigurationManager,
    ConfigurationError,
    DEFAULT_CONFIG_PATH,
    get_config,
    get_api_key,
)

__all__ = [
    'ConfigurationManager',
    'ConfigurationError',
    'DEFAULT_CONFIG_PATH',
    'get_config',
    'get_api_key',
]
