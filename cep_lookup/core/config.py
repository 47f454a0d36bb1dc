"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports three modes:
    - DEVELOPMENT: CEP providers are simulated in-process (no network needed)
    - STAGING: Real providers, verbose diagnostics
    - PRODUCTION: Real providers (ViaCEP, BrasilAPI, Postmon)

The ENV_MODE variable controls which HTTP transport the CEP resolver is
built with, enabling seamless switching between local testing and
production deployment.

Usage:
    from cep_lookup.core.config import get_settings
    
    settings = get_settings()
    if settings.is_development:
        # Use simulated providers
    else:
        # Use real APIs

Version: 1.0.0
"""

import logging
import sys
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.
    
    Attributes:
        DEVELOPMENT: Local testing with simulated providers
        PRODUCTION: Live environment hitting the real CEP providers
        STAGING: Pre-production testing with the real providers
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    All settings can be overridden via environment variables or .env file.
    
    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details
        
        # API Configuration
        api_host: Host to bind the API server
        api_port: Port for the API server
        cors_origins: Comma-separated list of allowed origins
        
        # CEP Providers
        cep_user_agent: User-Agent header sent to every provider
        viacep_url / brasilapi_url / postmon_url: Provider base URLs
        viacep_timeout_ms / brasilapi_timeout_ms / postmon_timeout_ms:
            Per-provider deadline in milliseconds
        
        # Cache
        cep_cache_ttl_seconds: Lifetime of a cached address (0 disables)
        cep_cache_max_entries: Maximum number of cached addresses
        
        # Development simulation
        mock_failure_rate: Probability of a simulated provider failure
        mock_min_latency / mock_max_latency: Simulated latency in seconds
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================
    
    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )
    
    # ==========================================================================
    # APPLICATION
    # ==========================================================================
    
    app_name: str = Field(
        default="Delivery CEP Lookup",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )
    
    # ==========================================================================
    # CEP PROVIDERS
    # ==========================================================================
    
    cep_user_agent: str = Field(
        default="WebiDelivery/1.0",
        description="User-Agent header sent to CEP providers"
    )
    viacep_url: str = Field(
        default="https://viacep.com.br/ws",
        description="ViaCEP base URL (primary provider)"
    )
    viacep_timeout_ms: int = Field(
        default=5000,
        description="ViaCEP deadline in milliseconds"
    )
    brasilapi_url: str = Field(
        default="https://brasilapi.com.br/api/cep/v2",
        description="BrasilAPI base URL (fallback provider)"
    )
    brasilapi_timeout_ms: int = Field(
        default=4000,
        description="BrasilAPI deadline in milliseconds"
    )
    postmon_url: str = Field(
        default="https://api.postmon.com.br/v1/cep",
        description="Postmon base URL (backup provider)"
    )
    postmon_timeout_ms: int = Field(
        default=4000,
        description="Postmon deadline in milliseconds"
    )
    
    # ==========================================================================
    # CACHE
    # ==========================================================================
    
    cep_cache_ttl_seconds: int = Field(
        default=86400,
        description="Seconds a resolved address stays cached (0 disables)"
    )
    cep_cache_max_entries: int = Field(
        default=5000,
        description="Maximum number of cached addresses"
    )
    
    # ==========================================================================
    # DEVELOPMENT SIMULATION
    # ==========================================================================
    
    mock_failure_rate: float = Field(
        default=0.05,
        description="Probability that a simulated provider call fails"
    )
    mock_min_latency: float = Field(
        default=0.05,
        description="Minimum simulated provider latency in seconds"
    )
    mock_max_latency: float = Field(
        default=0.3,
        description="Maximum simulated provider latency in seconds"
    )
    
    # ==========================================================================
    # VALIDATORS
    # ==========================================================================
    
    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")
    
    @field_validator("viacep_timeout_ms", "brasilapi_timeout_ms", "postmon_timeout_ms")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Provider deadlines must be positive."""
        if v <= 0:
            raise ValueError("Provider timeout must be a positive number of milliseconds")
        return v
    
    @field_validator("mock_failure_rate")
    @classmethod
    def validate_failure_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("mock_failure_rate must be between 0.0 and 1.0")
        return v
    
    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================
    
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT
    
    @property
    def use_real_services(self) -> bool:
        """Check if real external providers should be used."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)
    
    @property
    def cors_origins_list(self) -> list[str]:
        """Get allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Uses LRU cache to ensure settings are loaded only once,
    keeping configuration consistent across the application lifecycle.
    
    Returns:
        Settings: Configured application settings
        
    Example:
        >>> settings = get_settings()
        >>> print(settings.env_mode)
        EnvironmentMode.DEVELOPMENT
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.
    
    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        
    Returns:
        Configured package logger
    """
    settings = get_settings()
    
    # Set level based on debug mode
    if settings.debug:
        level = logging.DEBUG
    
    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    
    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    
    return logging.getLogger("cep_lookup")


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.
    
    Args:
        name: Logger name (typically __name__)
        
    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
