"""
Configuration management for the engagement engine.

This module handles loading and validating configuration from YAML files.
All configuration values are validated using Pydantic models to ensure
type safety and catch configuration errors early.

The configuration system supports:
- Rolling window, baseline and spike detector tuning
- Alert cooldowns, budgets and detector windows
- Remote tone classifier endpoint, timeout and quota breaker
- Logging format and level

Configuration is loaded from YAML files in the config/ directory:
    - features.yaml: Window, baseline, spike, pipeline and logging settings
    - alerts.yaml: Alert engine settings
    - classifier.yaml: Remote tone classifier settings

Environment variables override:
    - LOG_LEVEL: Application log level
    - TONE_CLASSIFIER_API_KEY / OPENAI_API_KEY: Remote classifier key

Example:
    >>> from chatpulse.config import load_config, AppConfig
    >>> config = load_config()
    >>> if config.classifier.is_active:
    ...     print(f"Remote tone model: {config.classifier.model}")

Modules:
    loader: Configuration file loading utilities
    models: Pydantic models for configuration validation
"""

from chatpulse.config.loader import ConfigLoadError, ConfigLoader, load_config
from chatpulse.config.models import (
    # Enums
    BreakerScope,
    LogFormat,
    LogLevel,
    # Features config
    BaselineConfig,
    FeaturesConfig,
    LoggingConfig,
    PipelineConfig,
    SpikeConfig,
    WindowConfig,
    # Alert config
    AlertsConfig,
    CooldownConfig,
    # Classifier config
    ClassifierConfig,
    # Root config
    AppConfig,
)

__all__ = [
    # Loader
    "ConfigLoadError",
    "ConfigLoader",
    "load_config",
    # Enums
    "BreakerScope",
    "LogFormat",
    "LogLevel",
    # Features config
    "BaselineConfig",
    "FeaturesConfig",
    "LoggingConfig",
    "PipelineConfig",
    "SpikeConfig",
    "WindowConfig",
    # Alert config
    "AlertsConfig",
    "CooldownConfig",
    # Classifier config
    "ClassifierConfig",
    # Root config
    "AppConfig",
]
