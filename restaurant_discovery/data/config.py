"""
Run configuration for the discovery pipeline
"""
from typing import Any, Dict, List, Set, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from restaurant_discovery.data import defaults
from restaurant_discovery.data.errors import ConfigError
from restaurant_discovery.data.models import DiscoverySource


class DiscoveryConfig(BaseModel):
    """Recognized options for one discovery run"""
    model_config = {"extra": "forbid", "frozen": True}

    enabled_sources: Set[DiscoverySource] = Field(
        default_factory=lambda: {DiscoverySource.API, DiscoverySource.SCRAPING, DiscoverySource.SOCIAL}
    )
    concurrency: int = Field(3, ge=1, le=32)
    duplicate_threshold: float = Field(0.8, gt=0, le=1)
    confidence_threshold: float = Field(0.6, ge=0, lt=1)
    region_keywords: List[str] = Field(default_factory=lambda: list(defaults.DEFAULT_REGION_KEYWORDS))
    domain_keywords: List[str] = Field(default_factory=lambda: list(defaults.DEFAULT_DOMAIN_KEYWORDS))
    strict_domain_match: bool = False

    queries: Dict[DiscoverySource, List[str]] = Field(
        default_factory=lambda: {DiscoverySource(k): list(v) for k, v in defaults.DEFAULT_QUERIES.items()}
    )
    adapter_timeout: float = Field(60.0, gt=0)
    run_timeout: float = Field(300.0, gt=0)

    region_centroid: Tuple[float, float] = defaults.DEFAULT_REGION_CENTROID
    search_radius_m: int = Field(defaults.DEFAULT_SEARCH_RADIUS_M, gt=0)
    max_results_per_query: int = Field(10, ge=1, le=60)
    default_cuisine: str = defaults.DEFAULT_CUISINE_TAG

    @field_validator("region_keywords", "domain_keywords")
    @classmethod
    def _lowercase_keywords(cls, value: List[str]) -> List[str]:
        cleaned = [k.strip().lower() for k in value]
        if any(not k for k in cleaned):
            raise ValueError("keywords must be non-empty strings")
        return cleaned

    @field_validator("region_centroid")
    @classmethod
    def _check_centroid(cls, value: Tuple[float, float]) -> Tuple[float, float]:
        lat, lng = value
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            raise ValueError(f"region centroid out of range: {value}")
        return value

    @model_validator(mode="after")
    def _check_sources(self) -> "DiscoveryConfig":
        if not self.enabled_sources:
            raise ValueError("at least one source must be enabled")
        if self.adapter_timeout > self.run_timeout:
            raise ValueError("adapter_timeout cannot exceed run_timeout")
        return self

    def queries_for(self, source: DiscoverySource) -> List[str]:
        return list(self.queries.get(source, []))

    @classmethod
    def from_input(cls, config: Union["DiscoveryConfig", Dict[str, Any], None]) -> "DiscoveryConfig":
        """Coerce a mapping (or None for defaults) into a validated config, raising ConfigError."""
        if isinstance(config, cls):
            return config
        if config is None:
            return cls()
        if not isinstance(config, dict):
            raise ConfigError(f"Unsupported configuration type: {type(config).__name__}")
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise ConfigError(f"Invalid discovery configuration: {e}") from e
