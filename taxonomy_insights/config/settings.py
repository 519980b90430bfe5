"""
Taxonomy Insights
Centralized Configuration Management

Pydantic settings with environment variable support for the matching,
scoring and benchmarking stages of an aggregation run.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchingSettings(BaseSettings):
    """Metric fact matching configuration"""
    
    model_config = SettingsConfigDict(env_prefix="MATCHING_")
    
    max_workers: int = Field(default=8, ge=1, description="Fixed worker pool size for matching")
    path_prefix_floor: float = Field(default=0.8, description="Minimum confidence of a path-prefix match")
    keyword_confidence: float = Field(default=0.7, description="Confidence of a category keyword match")
    title_confidence: float = Field(default=0.7, description="Confidence of a product title match")


class ScoringSettings(BaseSettings):
    """Opportunity scoring configuration"""
    
    model_config = SettingsConfigDict(env_prefix="SCORING_")
    
    # Composite weights
    traffic_weight: float = Field(default=0.25, description="Traffic potential weight")
    revenue_weight: float = Field(default=0.30, description="Revenue potential weight")
    pricing_weight: float = Field(default=0.25, description="Pricing opportunity weight")
    competitive_weight: float = Field(default=0.10, description="Competitive gap weight")
    content_weight: float = Field(default=0.10, description="Content quality weight")
    
    # Categorization thresholds
    high_score_threshold: float = Field(default=70.0, description="Score at which an opportunity is high")
    medium_score_threshold: float = Field(default=40.0, description="Score at which an opportunity is medium")
    low_effort_threshold: int = Field(default=10, description="Max product count for low effort")
    medium_effort_threshold: int = Field(default=100, description="Max product count for medium effort")
    
    @model_validator(mode="after")
    def validate_weights(self) -> "ScoringSettings":
        """Composite weights must sum to 1.0"""
        total = (
            self.traffic_weight
            + self.revenue_weight
            + self.pricing_weight
            + self.competitive_weight
            + self.content_weight
        )
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total}")
        return self


class BenchmarkSettings(BaseSettings):
    """Peer benchmark and insight trigger configuration"""
    
    model_config = SettingsConfigDict(env_prefix="BENCHMARK_")
    
    min_impressions: int = Field(default=100, description="Minimum impressions to scan a node for insights")
    critical_min_impressions: int = Field(default=10_000, description="Impressions for a critical CTR insight")
    critical_max_ctr: float = Field(default=0.005, description="CTR below which a visible node is critical")
    ctr_gap_threshold: float = Field(default=-30.0, description="Percent below peer CTR for high priority")
    conversion_min_clicks: int = Field(default=100, description="Clicks for a conversion-focus insight")
    conversion_max_rate: float = Field(default=0.01, description="Conversion rate below which to flag")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""
    
    model_config = SettingsConfigDict(env_prefix="")
    
    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings
    
    Aggregates all configuration sections and provides a single entry point
    for accessing configuration.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )
    
    app_name: str = Field(default="taxonomy-insights", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")
    
    version: str = Field(default="1.0.0", description="Application version")
    
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    benchmark: BenchmarkSettings = Field(default_factory=BenchmarkSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    
    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()
    
    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Returns:
        Settings: Application settings instance
    """
    return Settings()
