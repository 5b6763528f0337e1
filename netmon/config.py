import copy
import logging
import os

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "NETMON_CONFIG"


class Config:
    """Configuration manager that loads from YAML and merges with defaults."""

    DEFAULTS = {
        "server": {
            "host": "127.0.0.1",
            "port": 8765,
            "debug": False,
        },
        "storage": {
            "backend": "file",
            "path": "data/network_logs.json",
            "async_writes": True,
        },
        "retention": {
            "capacity": 100,
        },
        "correlation": {
            "stale_after_seconds": 300,
            "sweep_interval_seconds": 60,
        },
        "dashboard": {
            "window_size": 10,
            "visible_rows": 10,
        },
        "export": {
            "directory": "exports",
        },
        "logging": {
            "level": "INFO",
        },
    }

    def __init__(self, config_path=None):
        self._config = copy.deepcopy(self.DEFAULTS)

        if config_path is not None:
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    user_config = yaml.safe_load(f)

                if user_config and isinstance(user_config, dict):
                    self._config = self._deep_merge(self._config, user_config)
                logger.info("Loaded config from %s", config_path)
            except FileNotFoundError:
                logger.warning("Config file %s not found, using defaults", config_path)
            except yaml.YAMLError:
                logger.warning("Invalid YAML in %s, using defaults", config_path)

    @classmethod
    def from_env(cls, config_path=None):
        """Explicit path wins, then $NETMON_CONFIG, then plain defaults."""
        return cls(config_path or os.environ.get(CONFIG_ENV_VAR))

    @staticmethod
    def _deep_merge(base, override):
        """Recursively merge override dict into base dict."""
        result = copy.deepcopy(base)
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)
        return result

    def __getitem__(self, key):
        return self._config[key]
