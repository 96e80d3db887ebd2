"""
OKR progress service settings.

Extends the base settings with progress-engine configuration.
"""

from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """Progress-service specific settings."""

    # ==========================================================================
    # Pace Classification
    # ==========================================================================
    # Fraction of the year by which actual progress may lead or trail the
    # linear expectation before the pace label changes.
    PACE_MARGIN: float = 0.10

    # ==========================================================================
    # Progress Cache
    # ==========================================================================
    PROGRESS_CACHE_TTL_SECONDS: int = 300
    PROGRESS_CACHE_MAX_ENTRIES: int = 10_000

    # ==========================================================================
    # API
    # ==========================================================================
    API_PREFIX: str = "/api/v1"

    def collect_errors(self) -> list:
        errors = super().collect_errors()

        if not 0 <= self.PACE_MARGIN < 1:
            errors.append("PACE_MARGIN must be in [0, 1)")

        if self.PROGRESS_CACHE_TTL_SECONDS < 0:
            errors.append("PROGRESS_CACHE_TTL_SECONDS cannot be negative")

        if self.PROGRESS_CACHE_MAX_ENTRIES <= 0:
            errors.append("PROGRESS_CACHE_MAX_ENTRIES must be positive")

        return errors


# Global settings instance
settings = Settings()
