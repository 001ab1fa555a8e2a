"""Configuration management - loads products.yaml and environment variables."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from trivial_drive.models import (
    BillingConfig,
    GameConfig,
    MessagesConfig,
    ProductsConfig,
)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class Config:
    """Application configuration loader and manager.

    Loads products.yaml and provides validated access to:
    - Product and subscription definitions
    - Gas tank settings
    - Message texts
    - Local billing source settings
    """

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to products.yaml file. If not provided, uses CONFIG_PATH env var
                        or defaults to ./config/products.yaml
        """
        self._config_path = self._resolve_config_path(config_path)
        self._products_config: Optional[ProductsConfig] = None
        self._load_config()

    def _resolve_config_path(self, config_path: Optional[str]) -> Path:
        """Resolve configuration file path from argument, env var, or default."""
        if config_path:
            return Path(config_path)

        env_path = os.getenv("CONFIG_PATH")
        if env_path:
            return Path(env_path)

        return Path("config/products.yaml")

    def _load_config(self) -> None:
        """Load and validate products.yaml configuration."""
        if not self._config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {self._config_path}\n"
                f"Please create config/products.yaml or set CONFIG_PATH environment variable"
            )

        try:
            with open(self._config_path, encoding="utf-8") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML configuration: {e}")

        if not raw_config:
            raise ConfigurationError(f"Configuration file is empty: {self._config_path}")

        try:
            self._products_config = ProductsConfig(**raw_config)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}")

    @property
    def products(self) -> ProductsConfig:
        """Get validated products configuration."""
        if self._products_config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._products_config

    @property
    def config_path(self) -> Path:
        """Get path to configuration file."""
        return self._config_path

    @property
    def default_package_name(self) -> str:
        """Get application package name."""
        return self.products.default_package_name

    @property
    def game_settings(self) -> GameConfig:
        """Get gas tank settings."""
        return self.products.game

    @property
    def messages(self) -> MessagesConfig:
        """Get user-facing message texts."""
        return self.products.messages

    @property
    def billing_settings(self) -> BillingConfig:
        """Get local billing source settings."""
        return self.products.billing

