"""
Configuration management for livingdocs.
"""

import os
import copy
import json
import yaml
import toml
from pathlib import Path
from typing import Dict, Any, Optional
from pydantic import BaseModel, Field, ValidationError

from .constants import CONFIG_FILES, DEFAULT_CONFIG, AI_PROVIDERS
from .exceptions import ConfigurationError
from .utils import logger, merge_dicts


class ProjectConfig(BaseModel):
    """Project configuration model."""
    name: str = Field(default="My Project")
    team_id: str = Field(default="default")
    description: Optional[str] = None


class AIConfig(BaseModel):
    """AI integration configuration."""
    provider: str = Field(default="groq")
    model: str = Field(default="llama-3.3-70b-versatile")
    api_key: Optional[str] = None
    temperature: float = Field(default=0.3)
    max_tokens: int = Field(default=2048)
    base_url: Optional[str] = None
    max_retries: int = Field(default=3)


class StorageConfig(BaseModel):
    """Persistence configuration."""
    db_path: str = Field(default="~/.livingdocs/livingdocs.db")

    def resolved_path(self) -> Path:
        return Path(self.db_path).expanduser()


class CollaborationConfig(BaseModel):
    """Realtime collaboration configuration."""
    room: str = Field(default="docs-collaboration")
    lease_ttl: float = Field(default=60.0)


class GenerationConfig(BaseModel):
    """Documentation generation configuration."""
    staleness_days: int = Field(default=7)
    search_limit: int = Field(default=20)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO")
    file: Optional[str] = None


class LivingDocsConfig(BaseModel):
    """Main configuration model."""
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    collaboration: CollaborationConfig = Field(default_factory=CollaborationConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class Config:
    """Configuration manager for livingdocs."""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file
        self.config_data = self._load_config()
        try:
            self.config = LivingDocsConfig(**self.config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        self._apply_environment_overrides()

    def _find_config_file(self) -> Optional[Path]:
        """Find configuration file in current directory or parent directories."""
        current_dir = Path.cwd()

        for parent in [current_dir] + list(current_dir.parents):
            for config_name in CONFIG_FILES:
                config_path = parent / config_name
                if config_path.exists():
                    logger.debug(f"Found config file: {config_path}")
                    return config_path

        return None

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file."""
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_file:
            config_path = Path(self.config_file)
        else:
            config_path = self._find_config_file()

        if not config_path or not config_path.exists():
            logger.debug("No config file found, using defaults")
            return config

        try:
            if config_path.suffix in ['.yaml', '.yml']:
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
            elif config_path.suffix == '.toml':
                with open(config_path, 'r') as f:
                    file_config = toml.load(f)
            elif config_path.suffix == '.json':
                with open(config_path, 'r') as f:
                    file_config = json.load(f)
            else:
                logger.warning(f"Unknown config file format: {config_path}")
                return config

            config = merge_dicts(config, file_config)
            logger.debug(f"Loaded config from: {config_path}")

        except (OSError, yaml.YAMLError, toml.TomlDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Error loading config file: {e}")

        return config

    def _apply_environment_overrides(self):
        """Apply environment variable overrides to configuration."""
        if not self.config.ai.api_key:
            provider_info = AI_PROVIDERS.get(self.config.ai.provider, {})
            env_key = provider_info.get('env_key') or f"{self.config.ai.provider.upper()}_API_KEY"
            api_key = os.getenv(env_key)
            if api_key:
                self.config.ai.api_key = api_key

        db_path = os.getenv('LIVINGDOCS_DB_PATH')
        if db_path:
            self.config.storage.db_path = db_path

        team_id = os.getenv('LIVINGDOCS_TEAM_ID')
        if team_id:
            self.config.project.team_id = team_id

        log_level = os.getenv('LIVINGDOCS_LOG_LEVEL')
        if log_level:
            self.config.logging.level = log_level

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key."""
        keys = key.split('.')
        value = self.config_data

        try:
            for k in keys:
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any):
        """Set configuration value by dot-notation key."""
        keys = key.split('.')
        config_dict = self.config_data

        for k in keys[:-1]:
            if k not in config_dict:
                config_dict[k] = {}
            config_dict = config_dict[k]

        config_dict[keys[-1]] = value

        self.config = LivingDocsConfig(**self.config_data)
        self._apply_environment_overrides()

    def save(self, path: Optional[str] = None) -> Path:
        """Save configuration to file."""
        if path:
            save_path = Path(path)
        else:
            save_path = Path(self.config_file or '.livingdocs.yaml')

        if save_path.suffix in ['.yaml', '.yml']:
            with open(save_path, 'w') as f:
                yaml.dump(self.config_data, f, default_flow_style=False)
        elif save_path.suffix == '.toml':
            with open(save_path, 'w') as f:
                toml.dump(self.config_data, f)
        elif save_path.suffix == '.json':
            with open(save_path, 'w') as f:
                json.dump(self.config_data, f, indent=2)
        else:
            # Default to YAML
            save_path = save_path.with_suffix('.yaml')
            with open(save_path, 'w') as f:
                yaml.dump(self.config_data, f, default_flow_style=False)

        logger.info(f"Configuration saved to: {save_path}")
        return save_path

    def validate(self) -> bool:
        """Validate configuration."""
        try:
            LivingDocsConfig(**self.config_data)
            return True
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            return False

    @classmethod
    def create_default(cls, path: str = '.livingdocs.yaml') -> 'Config':
        """Create a default configuration file."""
        config = cls(config_file=path if Path(path).exists() else None)
        config.save(path)
        return config
