"""
Client configuration.

Everything the analysis client needs is passed in through one `ClientConfig`
instance. `ClientConfig.from_env()` applies COIN_ANALYZER_* overrides.
"""

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

DEFAULT_BASE_URL = "https://copperzync-backend.onrender.com"


class BackoffPolicy(str, Enum):
    """Wait between retry attempts."""

    IMMEDIATE = "immediate"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    analyze_path: str = "/analyze"
    health_path: str = "/health"

    # seconds
    request_timeout: float = 30.0
    operation_timeout: float = 35.0
    connectivity_timeout: float = 3.0
    probe_timeout: float = 10.0

    max_retries: int = 1
    backoff: BackoffPolicy = BackoffPolicy.EXPONENTIAL
    backoff_multiplier: float = 1.0
    backoff_max: float = 10.0

    max_dimension: int = 800
    jpeg_quality: int = 70

    connections_per_host: int = 2

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        if not isinstance(self.backoff, BackoffPolicy):
            object.__setattr__(self, "backoff", BackoffPolicy(str(self.backoff).lower()))
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        for name in ("request_timeout", "operation_timeout", "connectivity_timeout", "probe_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_dimension <= 0:
            raise ValueError("max_dimension must be positive")
        if not 1 <= self.jpeg_quality <= 95:
            raise ValueError("jpeg_quality must be between 1 and 95")

    def url(self, path: str) -> str:
        return self.base_url + path

    @property
    def analyze_url(self) -> str:
        return self.url(self.analyze_path)

    @property
    def health_url(self) -> str:
        return self.url(self.health_path)

    def with_overrides(self, **changes) -> "ClientConfig":
        """Return a copy with the non-None values of `changes` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls, base: Optional["ClientConfig"] = None) -> "ClientConfig":
        """Build a config from COIN_ANALYZER_* environment variables.

        Args:
            base: Config whose values are used where no variable is set.

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        base = base or cls()
        return base.with_overrides(
            base_url=os.getenv("COIN_ANALYZER_BASE_URL"),
            max_retries=_env_number("COIN_ANALYZER_MAX_RETRIES", int),
            backoff=os.getenv("COIN_ANALYZER_BACKOFF"),
            request_timeout=_env_number("COIN_ANALYZER_REQUEST_TIMEOUT", float),
            operation_timeout=_env_number("COIN_ANALYZER_OPERATION_TIMEOUT", float),
        )


def _env_number(name: str, kind):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
