"""
CEP Service Factory

Provides a single entry point for obtaining the CEP resolver.
Automatically selects simulated or real providers based on ENV_MODE.

Usage:
    from cep_lookup.services.cep import get_cep_resolver

    resolver = get_cep_resolver()
    outcome = await resolver.resolve("01001-000")

Version: 1.0.0
"""

import logging
from functools import lru_cache

import httpx

from cep_lookup.core.config import Settings, get_settings
from cep_lookup.services.cep.base import (
    AddressRecord,
    AllProvidersExhausted,
    CepLookupError,
    KeyValidationError,
    LookupOutcome,
    OutcomeStatus,
    ProviderError,
    ProviderMalformedResponse,
    ProviderNotFound,
    ProviderSpec,
    ProviderTimeout,
    ProviderTransportError,
)
from cep_lookup.services.cep.cache import AddressCache
from cep_lookup.services.cep.keys import format_cep, normalize_cep
from cep_lookup.services.cep.mock import MockProviderTransport
from cep_lookup.services.cep.providers import (
    BRASILAPI,
    POSTMON,
    VIACEP,
    build_providers,
)
from cep_lookup.services.cep.resolver import CepResolver

logger = logging.getLogger(__name__)


def build_mock_transport(settings: Settings) -> MockProviderTransport:
    """Mock transport answering on the configured provider hosts."""
    hosts = {
        httpx.URL(settings.viacep_url).host: VIACEP,
        httpx.URL(settings.brasilapi_url).host: BRASILAPI,
        httpx.URL(settings.postmon_url).host: POSTMON,
    }
    return MockProviderTransport(
        hosts=hosts,
        failure_rate=settings.mock_failure_rate,
        min_latency=settings.mock_min_latency,
        max_latency=settings.mock_max_latency,
    )


@lru_cache()
def get_cep_resolver() -> CepResolver:
    """
    Get the configured CEP resolver instance.

    Built once per process. In development mode the resolver talks to
    MockProviderTransport; otherwise to the real providers.

    Returns:
        CepResolver: Configured resolver
    """
    settings = get_settings()
    providers = build_providers(settings)

    if settings.use_real_services:
        logger.info(
            f"CEP Service: Using real providers "
            f"({settings.env_mode.value} mode)"
        )
        transport = None
    else:
        logger.info("CEP Service: Using simulated providers (development mode)")
        transport = build_mock_transport(settings)

    return CepResolver(
        providers,
        transport=transport,
        user_agent=settings.cep_user_agent,
    )


def reset_cep_resolver() -> None:
    """
    Clear the cached resolver instance.

    Useful for testing or when configuration changes at runtime.
    The caller is responsible for closing the previous instance.
    """
    get_cep_resolver.cache_clear()
    logger.debug("CEP resolver cache cleared")


@lru_cache()
def get_address_cache() -> AddressCache:
    """Get the process-wide address cache."""
    settings = get_settings()
    return AddressCache(
        ttl_seconds=settings.cep_cache_ttl_seconds,
        max_entries=settings.cep_cache_max_entries,
    )


def reset_address_cache() -> None:
    """Drop the process-wide address cache."""
    get_address_cache.cache_clear()


__all__ = [
    "get_cep_resolver",
    "reset_cep_resolver",
    "get_address_cache",
    "reset_address_cache",
    "build_mock_transport",
    "build_providers",
    "normalize_cep",
    "format_cep",
    "AddressCache",
    "AddressRecord",
    "CepResolver",
    "LookupOutcome",
    "OutcomeStatus",
    "ProviderSpec",
    "MockProviderTransport",
    "CepLookupError",
    "KeyValidationError",
    "ProviderError",
    "ProviderNotFound",
    "ProviderTimeout",
    "ProviderTransportError",
    "ProviderMalformedResponse",
    "AllProvidersExhausted",
]
