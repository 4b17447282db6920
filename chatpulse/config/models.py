"""
Pydantic models for application configuration.

This module defines all configuration models that are validated when loading
YAML configuration files. The models ensure type safety and provide sensible
defaults for every setting, so ``AppConfig()`` is a complete working
configuration on its own.

Configuration files:
    - config/features.yaml: Window, baseline, spike, pipeline and logging settings
    - config/alerts.yaml: Alert cooldowns, budgets and detector windows
    - config/classifier.yaml: Remote tone classifier and quota breaker

Example:
    >>> from chatpulse.config.models import AppConfig
    >>> config = AppConfig()
    >>> config.features.baseline.long_tau_seconds
    180.0
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class LogFormat(str, Enum):
    """Logging format options."""

    JSON = "json"
    TEXT = "text"


class LogLevel(str, Enum):
    """Logging level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BreakerScope(str, Enum):
    """Sharing scope of the classifier quota breaker."""

    PROCESS = "process"  # one breaker for every channel (quota belongs to the key)
    CHANNEL = "channel"  # one breaker per channel


# =============================================================================
# FEATURES CONFIGURATION
# =============================================================================


class WindowConfig(BaseModel):
    """Rolling window settings for the aggregator."""

    model_config = {"frozen": True, "extra": "forbid"}

    rate_window_seconds: float = Field(
        default=60.0,
        description="Trailing window for message_rate",
        gt=0,
    )
    sentiment_window_seconds: float = Field(
        default=300.0,
        description="Trailing window for mean sentiment",
        gt=0,
    )
    retention_seconds: float = Field(
        default=600.0,
        description="Retention window for chatters, newcomers and rankings",
        gt=0,
    )
    top_n: int = Field(
        default=6,
        description="Number of top tokens and emotes reported",
        ge=1,
        le=50,
    )
    timeline_size: int = Field(
        default=120,
        description="Timeline points kept per channel",
        ge=1,
    )

    @model_validator(mode="after")
    def validate_windows(self) -> "WindowConfig":
        """Validate that every trailing window fits inside retention."""
        longest = max(self.rate_window_seconds, self.sentiment_window_seconds)
        if longest > self.retention_seconds:
            raise ValueError(
                f"retention_seconds ({self.retention_seconds}) must be >= "
                f"every trailing window ({longest})"
            )
        return self


class BaselineConfig(BaseModel):
    """Dual-horizon exponential baseline settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    short_tau_seconds: float = Field(
        default=20.0,
        description="Time constant of the short EMA",
        gt=0,
    )
    long_tau_seconds: float = Field(
        default=180.0,
        description="Time constant of the long EMA",
        gt=0,
    )
    ready_seconds: float = Field(
        default=90.0,
        description="Observed seconds before the baseline can become ready",
        ge=0,
    )
    ready_min_level: float = Field(
        default=0.1,
        description="Minimum |long| for the baseline to become ready",
        ge=0,
    )
    min_dt_seconds: float = Field(
        default=0.25,
        description="Lower clamp for the update interval",
        gt=0,
    )
    elapsed_cap_multiplier: float = Field(
        default=12.0,
        description="Observed time is capped at this multiple of long_tau_seconds",
        ge=1,
    )

    @model_validator(mode="after")
    def validate_horizons(self) -> "BaselineConfig":
        """Validate that the short horizon is shorter than the long one."""
        if self.short_tau_seconds >= self.long_tau_seconds:
            raise ValueError(
                f"short_tau_seconds ({self.short_tau_seconds}) must be < "
                f"long_tau_seconds ({self.long_tau_seconds})"
            )
        return self


class SpikeConfig(BaseModel):
    """Message-rate spike detector settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    ready_ratio: float = Field(
        default=1.4,
        description="Ratio to baseline required once the baseline is ready",
        gt=1,
    )
    warmup_ratio: float = Field(
        default=1.8,
        description="Ratio to baseline required during warmup",
        gt=1,
    )
    rearm_seconds: float = Field(
        default=20.0,
        description="Minimum seconds between spike events",
        ge=0,
    )
    history_size: int = Field(
        default=20,
        description="Spike events kept in history",
        ge=1,
    )


class PipelineConfig(BaseModel):
    """Per-channel pipeline and supervisor settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    batch_size: int = Field(
        default=60,
        description="Recent messages handed to the alert engine",
        ge=1,
    )
    tone_context_size: int = Field(
        default=6,
        description="Recent messages passed to the tone classifier",
        ge=0,
    )
    tick_interval_seconds: float = Field(
        default=5.0,
        description="Alert evaluation interval while the channel is quiet",
        gt=0,
    )
    queue_maxsize: int = Field(
        default=1000,
        description="Per-channel inbound queue bound (0 = unbounded)",
        ge=0,
    )


class LoggingConfig(BaseModel):
    """Logging settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    format: LogFormat = Field(
        default=LogFormat.JSON,
        description="Log output format",
    )
    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Log level",
    )


class FeaturesConfig(BaseModel):
    """Complete features configuration from features.yaml."""

    model_config = {"frozen": True, "extra": "forbid"}

    window: WindowConfig = Field(default_factory=WindowConfig)
    baseline: BaselineConfig = Field(default_factory=BaselineConfig)
    spike: SpikeConfig = Field(default_factory=SpikeConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# ALERT CONFIGURATION
# =============================================================================


class CooldownConfig(BaseModel):
    """Base cooldowns per detector, in seconds."""

    model_config = {"frozen": True, "extra": "forbid"}

    default_seconds: float = Field(default=30.0, ge=0)
    high_priority_seconds: float = Field(default=15.0, ge=0)
    newcomer_seconds: float = Field(default=180.0, ge=0)
    returning_seconds: float = Field(default=90.0, ge=0)
    summary_seconds: float = Field(default=45.0, ge=0)
    toxic_mild_seconds: float = Field(default=60.0, ge=0)
    momentum_seconds: float = Field(default=60.0, ge=0)
    calm_seconds: float = Field(default=60.0, ge=0)
    min_fraction: float = Field(
        default=0.3,
        description="Dynamic cooldowns never shrink below this fraction of base",
        gt=0,
        le=1,
    )


class AlertsConfig(BaseModel):
    """Complete alert configuration from alerts.yaml."""

    model_config = {"frozen": True, "extra": "forbid"}

    cooldowns: CooldownConfig = Field(default_factory=CooldownConfig)
    budget_base: int = Field(default=5, description="Base alert budget per cycle", ge=1)
    budget_min: int = Field(default=3, description="Minimum alert budget", ge=1)
    budget_max: int = Field(default=8, description="Maximum alert budget", ge=1)
    max_batch_messages: int = Field(default=80, ge=1)
    recent_window_messages: int = Field(default=12, ge=1)
    default_tone_confidence: float = Field(default=0.7, ge=0, le=1)
    min_session_seconds: float = Field(
        default=30.0,
        description="Session age before surge and tone-spike detectors arm",
        ge=0,
    )
    fresh_chatter_seconds: float = Field(default=300.0, gt=0)
    author_memory_seconds: float = Field(default=21600.0, gt=0)
    toxic_window_seconds: float = Field(default=30.0, gt=0)
    negative_window_seconds: float = Field(default=20.0, gt=0)
    idle_calm_seconds: float = Field(default=90.0, ge=0)
    summary_min_chatters: int = Field(default=200, ge=1)
    history_window_seconds: float = Field(
        default=120.0,
        description="Age after which emitted alerts leave the presented set",
        gt=0,
    )

    @model_validator(mode="after")
    def validate_budget(self) -> "AlertsConfig":
        """Validate budget bounds."""
        if self.budget_min > self.budget_max:
            raise ValueError(
                f"budget_min ({self.budget_min}) must be <= budget_max ({self.budget_max})"
            )
        return self


# =============================================================================
# CLASSIFIER CONFIGURATION
# =============================================================================


class ClassifierConfig(BaseModel):
    """Remote tone classifier settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(default=True, description="Use the remote classifier when a key is set")
    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible API base URL",
    )
    model: str = Field(default="gpt-4o-mini", description="Model name")
    api_key: Optional[str] = Field(
        default=None,
        description="API key (normally injected from the environment)",
        repr=False,
    )
    timeout_seconds: float = Field(default=3.0, description="Per-call timeout", gt=0)
    max_tokens: int = Field(default=150, ge=16)
    temperature: float = Field(default=0.0, ge=0, le=2)
    quota_cooldown_seconds: float = Field(
        default=900.0,
        description="How long the breaker stays open after a quota error",
        gt=0,
    )
    breaker_scope: BreakerScope = Field(default=BreakerScope.PROCESS)

    @property
    def is_active(self) -> bool:
        """Check if remote classification can be attempted."""
        return self.enabled and bool(self.api_key)


# =============================================================================
# ROOT CONFIGURATION
# =============================================================================


class AppConfig(BaseModel):
    """
    Root application configuration.

    Attributes:
        features: Window, baseline, spike and pipeline settings.
        alerts: Alert engine settings.
        classifier: Remote classifier settings.
        log_level: Effective log level (environment overrides features.logging).
    """

    model_config = {"frozen": True, "extra": "forbid"}

    features: FeaturesConfig = Field(default_factory=FeaturesConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    log_level: LogLevel = Field(default=LogLevel.INFO)
