import os
import yaml
from pathlib import Path
from string import Template
from typing import Optional
from dotenv import load_dotenv
import structlog
from pydantic import ValidationError

from src.models.config import NotifierConfig

logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Configuration validation failed"""

    pass


class ConfigManager:
    """Loads and validates the notifier configuration"""

    def __init__(self, config_path: str = "config/notifier.yaml"):
        self.config_path = Path(config_path)
        self.env_loaded = False
        self._config: Optional[NotifierConfig] = None

    def load_config(self) -> NotifierConfig:
        """Load and validate configuration"""
        if self._config:
            return self._config

        # 1. Load environment
        if not self.env_loaded:  # pragma: no cover
            load_dotenv()
            self.env_loaded = True

        # 2. Check file existence
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        # 3. Read YAML
        try:
            with open(self.config_path) as f:
                raw_content = f.read()
        except Exception as e:
            raise ConfigValidationError(f"Failed to read config file: {e}")

        # 4. Substitute env vars
        try:
            # Use safe_substitute to allow ${VAR} syntax
            template = Template(raw_content)
            substituted_content = template.safe_substitute(os.environ)
            config_data = yaml.safe_load(substituted_content) or {}
        except Exception as e:
            raise ConfigValidationError(
                f"Failed to parse YAML or substitute variables: {e}"
            )

        if not isinstance(config_data, dict):
            raise ConfigValidationError("Configuration root must be a mapping")

        # 5. Validate with Pydantic
        try:
            self._config = NotifierConfig(**config_data)
            logger.info(
                "config_loaded",
                projects=len(self._config.projects),
                offline=not self._config.gitlab.is_configured,
            )
            return self._config
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}")
