"""
Configuration management for Fihris.

Loads config.yaml with validation, environment overrides, and type checking.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
from dotenv import load_dotenv


class ConfigError(Exception):
    """Raised when configuration is invalid."""
    pass


class FihrisConfig:
    """
    Configuration manager with strict validation.

    Enforces:
    - Required keys present
    - Known generation models and citation styles
    - Environment override for the generation endpoint
    """

    # Required top-level keys
    REQUIRED_KEYS = ['generation', 'storage']

    MODELS = ('ollama', 'openai', 'openrouter')
    CITATION_STYLES = ('APA', 'MLA', 'Chicago', 'Harvard')

    DEFAULT_GENERATION_URL = 'http://localhost:8000/generate_index'

    def __init__(self, config_path: Optional[str] = None):
        """
        Load and validate configuration.

        Args:
            config_path: Path to config.yaml. Defaults to ./configs/config.yaml

        Raises:
            ConfigError: If config invalid or required files missing
        """
        load_dotenv()

        if config_path is None:
            config_path = os.getenv("FIHRIS_CONFIG_PATH", "./configs/config.yaml")

        self.config_path = Path(config_path)

        if not self.config_path.exists():
            raise ConfigError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self.data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}")

        if not isinstance(self.data, dict):
            raise ConfigError("Config root must be a mapping")

        url_override = os.getenv("FIHRIS_GENERATION_URL")
        if url_override:
            self.data.setdefault('generation', {})['url'] = url_override

        self._validate()

    def _validate(self):
        """Validate configuration structure and values."""
        for key in self.REQUIRED_KEYS:
            if key not in self.data:
                raise ConfigError(f"Missing required config key: {key}")

        gen_cfg = self.data['generation'] or {}
        defaults = gen_cfg.get('defaults', {}) or {}

        model = defaults.get('model', 'ollama')
        if model not in self.MODELS:
            raise ConfigError(f"Invalid generation model: {model}")

        style = defaults.get('citation_style', 'APA')
        if style not in self.CITATION_STYLES:
            raise ConfigError(f"Invalid citation style: {style}")

        timeout = gen_cfg.get('timeout')
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
            raise ConfigError(f"Invalid generation timeout: {timeout}")

        storage_cfg = self.data['storage'] or {}
        if not storage_cfg.get('state_dir'):
            raise ConfigError("Missing required config key: storage.state_dir")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get config value by dot-notation path.

        Args:
            key: Key path (e.g., 'generation.url', 'storage.state_dir')
            default: Default value if not found

        Returns:
            Configuration value
        """
        keys = key.split('.')
        value = self.data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def get_generation_config(self) -> Dict[str, Any]:
        """Get generation service configuration section."""
        return self.data.get('generation') or {}

    def get_generation_url(self) -> str:
        """Get the generation endpoint URL."""
        return self.get('generation.url', self.DEFAULT_GENERATION_URL)

    def get_generation_timeout(self) -> Optional[float]:
        """Get the HTTP timeout in seconds (None waits indefinitely)."""
        return self.get('generation.timeout')

    def get_generation_defaults(self) -> Dict[str, Any]:
        """Get default generation parameters."""
        return self.get('generation.defaults', {})

    def get_storage_config(self) -> Dict[str, Any]:
        """Get storage configuration section."""
        return self.data.get('storage') or {}

    def get_state_dir(self) -> str:
        """Get the directory holding persisted state."""
        return self.get('storage.state_dir')

    def get_audit_config(self) -> Dict[str, Any]:
        """Get audit logging configuration section."""
        return self.data.get('audit_log', {'enabled': True, 'file': './audit.log'})


# Global config instance (lazy-loaded)
_config_instance: Optional[FihrisConfig] = None


def load_config(config_path: Optional[str] = None) -> FihrisConfig:
    """
    Load or retrieve cached configuration.

    Args:
        config_path: Optional override path

    Returns:
        FihrisConfig instance
    """
    global _config_instance
    if _config_instance is None or config_path is not None:
        _config_instance = FihrisConfig(config_path)
    return _config_instance


def get_config() -> FihrisConfig:
    """Get currently loaded config (must be initialized)."""
    global _config_instance
    if _config_instance is None:
        raise RuntimeError("Config not loaded. Call load_config() first.")
    return _config_instance
