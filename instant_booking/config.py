"""
Centralized configuration with environment variable overrides.

Pricing rates, booking duration limits, and logging settings are
configurable here. Nothing is hardcoded in matching or pricing logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from instant_booking.logging_context import request_id_handler

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class PricingConfig:
    """Fee, tax, and distance rates used by the pricing engine."""

    default_service_fee_pct: float = _safe_float("DEFAULT_SERVICE_FEE_PCT", "0.10")
    default_tax_rate: float = _safe_float("DEFAULT_TAX_RATE", "0.13")
    # Fixed rates used when a membership discount re-derives fee and tax.
    membership_service_fee_pct: float = _safe_float("MEMBERSHIP_SERVICE_FEE_PCT", "0.10")
    membership_tax_rate: float = _safe_float("MEMBERSHIP_TAX_RATE", "0.13")
    free_radius_km: float = _safe_float("FREE_RADIUS_KM", "8")
    per_km_after_free: float = _safe_float("PER_KM_AFTER_FREE", "0.90")
    addons_commission_pct: float = _safe_float("ADDONS_COMMISSION_PCT", "18")
    # Instant bookings are priced as last-minute jobs.
    instant_lead_hours: float = _safe_float("INSTANT_LEAD_HOURS", "1")


@dataclass(frozen=True)
class BookingConfig:
    """Duration limits applied to instant booking requests."""

    min_duration_hours: int = _safe_int("MIN_DURATION_HOURS", "1")
    max_duration_hours: int = _safe_int("MAX_DURATION_HOURS", "8")
    default_duration_hours: int = _safe_int("DEFAULT_DURATION_HOURS", "2")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    pricing: PricingConfig = field(default_factory=PricingConfig)
    booking: BookingConfig = field(default_factory=BookingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "instant-booking")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    for rate_name, rate_value in [
        ("DEFAULT_SERVICE_FEE_PCT", config.pricing.default_service_fee_pct),
        ("DEFAULT_TAX_RATE", config.pricing.default_tax_rate),
        ("MEMBERSHIP_SERVICE_FEE_PCT", config.pricing.membership_service_fee_pct),
        ("MEMBERSHIP_TAX_RATE", config.pricing.membership_tax_rate),
    ]:
        if not 0.0 <= rate_value <= 1.0:
            raise ValueError(f"{rate_name} must be between 0.0 and 1.0, got {rate_value}")

    if config.pricing.free_radius_km < 0:
        raise ValueError(
            f"FREE_RADIUS_KM must be >= 0, got {config.pricing.free_radius_km}"
        )
    if config.pricing.per_km_after_free < 0:
        raise ValueError(
            f"PER_KM_AFTER_FREE must be >= 0, got {config.pricing.per_km_after_free}"
        )
    if config.pricing.instant_lead_hours < 0:
        raise ValueError(
            f"INSTANT_LEAD_HOURS must be >= 0, got {config.pricing.instant_lead_hours}"
        )
    if not 0.0 <= config.pricing.addons_commission_pct <= 100.0:
        raise ValueError(
            "ADDONS_COMMISSION_PCT must be between 0 and 100, "
            f"got {config.pricing.addons_commission_pct}"
        )

    if config.booking.min_duration_hours < 1:
        raise ValueError(
            f"MIN_DURATION_HOURS must be >= 1, got {config.booking.min_duration_hours}"
        )
    if config.booking.max_duration_hours < config.booking.min_duration_hours:
        raise ValueError(
            "MAX_DURATION_HOURS must be >= MIN_DURATION_HOURS, "
            f"got {config.booking.max_duration_hours}"
        )
    if not (
        config.booking.min_duration_hours
        <= config.booking.default_duration_hours
        <= config.booking.max_duration_hours
    ):
        raise ValueError(
            "DEFAULT_DURATION_HOURS must lie within the duration limits, "
            f"got {config.booking.default_duration_hours}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[request_id_handler()],
    )
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
