"""Configuration management"""
import os
import re
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dotenv import load_dotenv
from gherkinrunner.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULTS: Dict[str, Any] = {
    'http': {
        'timeout': 30,
    },
    'browser': {
        'headless': True,
        'cdp_endpoint': None,
        'timeout': 10.0,
        'poll_interval': 0.15,
        'navigation_settle': 0.3,
    },
    'scripts': {
        'path': 'config/scripts.yaml',
    },
    'reports': {
        'dir': 'reports',
    },
    'logging': {
        'level': 'INFO',
        'file': None,
    },
}

# ${VAR} or ${VAR:default}
ENV_VAR_PATTERN = re.compile(r'\$\{([^:}]+)(?::([^}]*))?\}')


class ConfigManager:
    """Loads config.yaml, merges the environment file and expands ${VAR} references"""

    def __init__(self, config_path: str = 'config/config.yaml', environment: str = 'dev'):
        self.config_path = Path(config_path)
        self.environment = environment
        self.config: Dict[str, Any] = {}

    def load_config(self) -> Dict[str, Any]:
        """Load and merge configuration files"""
        load_dotenv()
        self.config = self._merge_configs({}, DEFAULTS)

        if self.config_path.exists():
            with open(self.config_path, 'r') as f:
                self.config = self._merge_configs(self.config, yaml.safe_load(f) or {})
        else:
            logger.warning(f"Config file not found: {self.config_path}, using defaults")

        env_config_path = self.config_path.parent / 'environments' / f'{self.environment}.yaml'
        if env_config_path.exists():
            with open(env_config_path, 'r') as f:
                env_config = yaml.safe_load(f) or {}

            # Overrides replace keys section by section before the deep merge
            if 'overrides' in env_config:
                self._apply_overrides(self.config, env_config.pop('overrides') or {})

            self.config = self._merge_configs(self.config, env_config)
        else:
            logger.debug(f"Environment config not found: {env_config_path}")

        self.config = self._process_env_vars(self.config)

        logger.info(f"Configuration loaded for environment: {self.environment}")
        return self.config

    def _merge_configs(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            elif isinstance(value, dict):
                result[key] = self._merge_configs({}, value)
            else:
                result[key] = value

        return result

    def _apply_overrides(self, base: Dict, overrides: Dict) -> None:
        for section, values in overrides.items():
            if isinstance(values, dict) and isinstance(base.get(section), dict):
                base[section].update(values)
            else:
                base[section] = values

    def _process_env_vars(self, config: Any) -> Any:
        """Replace ${VAR} and ${VAR:default} with environment variables"""
        if isinstance(config, dict):
            return {k: self._process_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._process_env_vars(item) for item in config]
        elif isinstance(config, str):
            return ENV_VAR_PATTERN.sub(self._expand, config)
        else:
            return config

    @staticmethod
    def _expand(match) -> str:
        value = os.environ.get(match.group(1))
        if value is not None:
            return value
        if match.group(2) is not None:
            return match.group(2)
        return match.group(0)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (supports dot notation)"""
        value: Optional[Any] = self.config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def section(self, key: str) -> Dict[str, Any]:
        value = self.get(key, {})
        return value if isinstance(value, dict) else {}
