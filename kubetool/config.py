"""Configuration management for kubetool."""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MIN_STABLE = 0.8

ALL_NAMESPACES = "all"


class AvailabilityPolicy(str, Enum):
    """How controller availability is judged during a rollout."""

    RATIO = "ratio"
    # Legacy mode: every replica observed, live and available.
    STRICT = "strict"


def effective_stable_ratio(min_stable: float) -> float:
    """
    Normalize a minimum stable ratio.

    The ratio is clamped to [0, 1]. A value of exactly 0 selects the
    default of 0.8; it never means "no stable pods required".

    Args:
        min_stable: Configured ratio

    Returns:
        Ratio actually used by the availability check
    """
    ratio = min(max(min_stable, 0.0), 1.0)
    if ratio == 0:
        return DEFAULT_MIN_STABLE
    return ratio


class Settings(BaseSettings):
    """Runtime settings, overridable from the environment and the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="KUBETOOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Cluster Settings
    namespace: str = Field(
        default="",
        description='Target namespace; empty uses the context default, "all" spans the cluster',
    )
    kubeconfig_path: Optional[str] = None
    context: Optional[str] = None

    # Rollout Settings
    yes: bool = Field(default=False, description="Skip confirmation")
    force: bool = Field(default=False, description="Do not wait for stability")
    interval: int = Field(default=0, ge=0, description="Seconds between pod deletions")
    min_stable: float = Field(
        default=DEFAULT_MIN_STABLE,
        description="Minimum stable pod ratio; 0 selects the default",
    )
    availability_policy: AvailabilityPolicy = AvailabilityPolicy.RATIO
    only_one: bool = False

    # Logging Settings
    verbose: bool = False
    log_level: str = "INFO"

    @property
    def stable_ratio(self) -> float:
        """Effective minimum stable ratio."""
        return effective_stable_ratio(self.min_stable)

    @property
    def all_namespaces(self) -> bool:
        return self.namespace == ALL_NAMESPACES


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
