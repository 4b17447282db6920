"""
YAML configuration loading for the engagement engine.

Reads the three YAML files under config/, applies environment overrides and
validates everything through the Pydantic models in chatpulse.config.models,
so a bad threshold fails at startup rather than mid-stream.

Configuration files expected:
    - config/features.yaml: Window, baseline, spike, pipeline and logging settings
    - config/alerts.yaml: Alert cooldowns, budgets and detector windows
    - config/classifier.yaml: Remote tone classifier and quota breaker

Environment variables override:
    - LOG_LEVEL: Application log level
    - TONE_CLASSIFIER_API_KEY (or OPENAI_API_KEY): Remote classifier key
    - TONE_CLASSIFIER_BASE_URL: Remote classifier base URL
    - TONE_CLASSIFIER_MODEL: Remote classifier model

Example:
    >>> from chatpulse.config.loader import load_config
    >>> config = load_config("config")
    >>> print(config.features.spike.ready_ratio)
    1.4
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from chatpulse.config.models import (
    AlertsConfig,
    AppConfig,
    BaselineConfig,
    ClassifierConfig,
    CooldownConfig,
    FeaturesConfig,
    LoggingConfig,
    LogLevel,
    PipelineConfig,
    SpikeConfig,
    WindowConfig,
)
from chatpulse.exceptions import ChatPulseError


class ConfigLoadError(ChatPulseError):
    """
    Raised when configuration loading fails.

    Attributes:
        message: Error message describing what went wrong.
        file_path: Path to the file that caused the error, if applicable.
        cause: Original exception that caused the error, if any.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        cause: Optional[Exception] = None,
    ):
        """
        Initialize ConfigLoadError.

        Args:
            message: Error message.
            file_path: Path to the problematic file.
            cause: Original exception.
        """
        self.message = message
        self.file_path = file_path
        self.cause = cause
        super().__init__(message)


class ConfigLoader:
    """
    Loads and validates application configuration from YAML files.

    Expects the following directory structure:
        config/
        ├── features.yaml    - Window, baseline, spike and pipeline settings
        ├── alerts.yaml      - Alert cooldowns and detector windows
        └── classifier.yaml  - Remote tone classifier settings

    Every file is optional. A missing file leaves that section at its
    defaults; an empty or malformed file is an error.

    Example:
        >>> loader = ConfigLoader("config")
        >>> config = loader.load()
        >>> print(config.alerts.cooldowns.newcomer_seconds)
        180.0
    """

    def __init__(self, config_dir: Path | str = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Path to configuration directory (default: 'config').

        Raises:
            ConfigLoadError: If config directory does not exist.
        """
        self.config_dir = Path(config_dir)
        if not self.config_dir.exists():
            raise ConfigLoadError(
                f"Configuration directory not found: {self.config_dir}",
                file_path=self.config_dir,
            )
        if not self.config_dir.is_dir():
            raise ConfigLoadError(
                f"Configuration path is not a directory: {self.config_dir}",
                file_path=self.config_dir,
            )

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """
        Load a YAML file from the config directory.

        Args:
            filename: Name of YAML file (e.g., 'features.yaml').

        Returns:
            Dict containing parsed YAML content, empty if the file is absent.

        Raises:
            ConfigLoadError: If the file is empty, not a mapping, or invalid YAML.
        """
        file_path = self.config_dir / filename
        if not file_path.exists():
            return {}

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(
                f"Invalid YAML syntax in {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except OSError as e:
            raise ConfigLoadError(
                f"Error reading {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        if data is None:
            raise ConfigLoadError(
                f"Configuration file is empty: {file_path}",
                file_path=file_path,
            )
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"Configuration file must contain a mapping: {file_path}",
                file_path=file_path,
            )
        return data

    def _load_features(self) -> FeaturesConfig:
        """
        Load feature settings from features.yaml.

        Returns:
            FeaturesConfig object.

        Raises:
            ConfigLoadError: If validation fails.
        """
        data = self._load_yaml("features.yaml")

        try:
            return FeaturesConfig(
                window=WindowConfig(**data.get("window", {})),
                baseline=BaselineConfig(**data.get("baseline", {})),
                spike=SpikeConfig(**data.get("spike", {})),
                pipeline=PipelineConfig(**data.get("pipeline", {})),
                logging=LoggingConfig(**data.get("logging", {})),
            )
        except (ValidationError, TypeError) as e:
            raise ConfigLoadError(
                f"Invalid features configuration: {e}",
                file_path=self.config_dir / "features.yaml",
                cause=e,
            ) from e

    def _load_alerts(self) -> AlertsConfig:
        """
        Load alert settings from alerts.yaml.

        Returns:
            AlertsConfig object.

        Raises:
            ConfigLoadError: If validation fails.
        """
        data = dict(self._load_yaml("alerts.yaml"))

        try:
            cooldowns = CooldownConfig(**data.pop("cooldowns", {}))
            return AlertsConfig(cooldowns=cooldowns, **data)
        except (ValidationError, TypeError) as e:
            raise ConfigLoadError(
                f"Invalid alerts configuration: {e}",
                file_path=self.config_dir / "alerts.yaml",
                cause=e,
            ) from e

    def _load_classifier(self) -> ClassifierConfig:
        """
        Load remote classifier settings from classifier.yaml and environment.

        Environment variables:
            - TONE_CLASSIFIER_API_KEY / OPENAI_API_KEY: API key
            - TONE_CLASSIFIER_BASE_URL: Base URL override
            - TONE_CLASSIFIER_MODEL: Model override

        Returns:
            ClassifierConfig object.

        Raises:
            ConfigLoadError: If validation fails.
        """
        data = dict(self._load_yaml("classifier.yaml"))

        api_key = os.getenv("TONE_CLASSIFIER_API_KEY") or os.getenv("OPENAI_API_KEY")
        if api_key:
            data["api_key"] = api_key
        base_url = os.getenv("TONE_CLASSIFIER_BASE_URL")
        if base_url:
            data["base_url"] = base_url
        model = os.getenv("TONE_CLASSIFIER_MODEL")
        if model:
            data["model"] = model

        try:
            return ClassifierConfig(**data)
        except (ValidationError, TypeError) as e:
            raise ConfigLoadError(
                f"Invalid classifier configuration: {e}",
                file_path=self.config_dir / "classifier.yaml",
                cause=e,
            ) from e

    def _get_log_level(self, features: FeaturesConfig) -> LogLevel:
        """
        Get log level from environment, falling back to features.yaml.

        Environment variables:
            - LOG_LEVEL: Log level

        Returns:
            LogLevel enum value.
        """
        level_str = os.getenv("LOG_LEVEL")
        if not level_str:
            return features.logging.level
        try:
            return LogLevel(level_str.upper())
        except ValueError:
            return features.logging.level

    def load(self) -> AppConfig:
        """
        Load and validate all configuration files.

        Missing files fall back to defaults; environment variables are
        applied on top of the classifier section and the log level.

        Returns:
            AppConfig: Validated application configuration.

        Raises:
            ConfigLoadError: If any configuration is invalid.
        """
        try:
            features = self._load_features()
            alerts = self._load_alerts()
            classifier = self._load_classifier()

            return AppConfig(
                features=features,
                alerts=alerts,
                classifier=classifier,
                log_level=self._get_log_level(features),
            )

        except ConfigLoadError:
            raise
        except ValidationError as e:
            raise ConfigLoadError(
                f"Configuration validation failed: {e}",
                cause=e,
            ) from e


def load_config(config_dir: Path | str = "config") -> AppConfig:
    """
    Load the engine configuration from a directory.

    Args:
        config_dir: Path to configuration directory (default: 'config').

    Returns:
        AppConfig: Validated application configuration.

    Raises:
        ConfigLoadError: If configuration loading fails.

    Example:
        >>> from chatpulse.config import load_config
        >>> config = load_config()
        >>> print(f"Long horizon: {config.features.baseline.long_tau_seconds}s")
    """
    loader = ConfigLoader(config_dir)
    return loader.load()
