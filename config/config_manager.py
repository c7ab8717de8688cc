"""Configuration manager for the inflation forecaster.

Loads the YAML configuration (``config/pipeline.yaml`` by default), exposes
dot-notation access (``manager.get("model.lags.first")``) and validates the
sections the pipeline relies on.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "pipeline.yaml"

REQUIRED_SECTIONS = ["data", "split", "model"]


class ConfigurationError(Exception):
    """Raised when the configuration file is missing or malformed."""
    pass


class ConfigurationManager:
    """Read-only view over a YAML configuration file."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Load configuration from disk.

        Parameters
        ----------
        config_path : str or Path, optional
            Path to a YAML file. Defaults to ``config/pipeline.yaml``.

        Raises
        ------
        ConfigurationError
            If the file does not exist or does not parse to a mapping.
        """
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._data = self._load(self.config_path)

    @staticmethod
    def _load(path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {path}")
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Top level of {path} must be a mapping")
        logger.debug("Loaded configuration from %s", path)
        return data

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Look up a value by dot-separated key path.

        Parameters
        ----------
        key_path : str
            Key path such as ``"fetch.timeout"``.
        default : Any
            Returned when any segment of the path is missing.

        Returns
        -------
        Any
            The configured value or ``default``.
        """
        node: Any = self._data
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def section(self, name: str) -> Dict[str, Any]:
        """Return a copy of a top-level section (empty dict if absent)."""
        value = self._data.get(name, {})
        return dict(value) if isinstance(value, dict) else {}

    def validate_configuration(self) -> Dict[str, List[str]]:
        """
        Check the sections the pipeline needs.

        Returns
        -------
        Dict[str, List[str]]
            Mapping of section name to a list of problems; empty when valid.
        """
        errors: Dict[str, List[str]] = {}

        for name in REQUIRED_SECTIONS:
            if name not in self._data:
                errors.setdefault(name, []).append("section missing")

        series = self.get("data.series", {})
        if not isinstance(series, dict) or not series:
            errors.setdefault("data", []).append("'series' must map column names to series ids")

        first = self.get("model.lags.first")
        last = self.get("model.lags.last")
        if first is not None and last is not None:
            try:
                if int(first) < 1 or int(last) < int(first):
                    errors.setdefault("model", []).append("lags must satisfy 1 <= first <= last")
            except (TypeError, ValueError):
                errors.setdefault("model", []).append("lags must be integers")

        level = self.get("model.confidence_level")
        if level is not None and not (0 < float(level) < 100):
            errors.setdefault("model", []).append("confidence_level must be in (0, 100)")

        return errors


def get_config(config_path: Optional[Union[str, Path]] = None) -> ConfigurationManager:
    """Create a configuration manager for ``config_path`` (default file if None)."""
    return ConfigurationManager(config_path)


def get_api_key(provider: str, config_manager: Optional[ConfigurationManager] = None) -> Optional[str]:
    """
    Resolve an API key for a data provider.

    The environment variable ``<PROVIDER>_API_KEY`` wins over the
    ``api_keys.<provider>`` entry of the configuration file.

    Parameters
    ----------
    provider : str
        Provider name, e.g. ``"fred"``.
    config_manager : ConfigurationManager, optional
        Manager to consult when the environment variable is unset.

    Returns
    -------
    Optional[str]
        The key, or None when neither source provides one.
    """
    env_key = os.getenv(f"{provider.upper()}_API_KEY")
    if env_key:
        return env_key
    if config_manager is not None:
        value = config_manager.get(f"api_keys.{provider}")
        if value:
            return str(value)
    return None
