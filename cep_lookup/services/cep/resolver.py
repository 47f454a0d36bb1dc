"""
CEP Resolver

Resolves a CEP by querying the configured providers strictly one at a
time, in declared order, and returning the first canonical record.

Behavior:
    - Invalid keys are rejected before any network call
    - Each provider call has its own deadline; on expiry the in-flight
      request is cancelled and the next provider is tried
    - Not-found, timeout, transport and malformed-payload failures are
      all handled the same way: log and move on
    - Callers only ever see a found record, an invalid-key message or
      one generic not-found message
    - Cancelling the caller cancels the provider call in flight

Usage:
    from cep_lookup.services.cep import get_cep_resolver

    resolver = get_cep_resolver()
    outcome = await resolver.resolve("01001-000")
    if outcome.ok:
        print(outcome.record.localidade)

Version: 1.0.0
"""

import asyncio
import logging
import time
from typing import Iterable, Optional

import httpx

from cep_lookup.services.cep.base import (
    AddressRecord,
    AllProvidersExhausted,
    KeyValidationError,
    LookupOutcome,
    ProviderError,
    ProviderMalformedResponse,
    ProviderNotFound,
    ProviderSpec,
    ProviderTimeout,
    ProviderTransportError,
)
from cep_lookup.services.cep.keys import CEP_LENGTH, normalize_cep

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "key not found by any provider"
DEFAULT_USER_AGENT = "WebiDelivery/1.0"


class CepResolver:
    """
    Sequential multi-provider CEP resolver.

    The provider list is fixed at construction. The resolver keeps no
    per-lookup state, so concurrent resolve() calls need no coordination.

    Attributes:
        providers: Ordered provider list (read-only)

    Example:
        >>> resolver = CepResolver(build_providers())
        >>> outcome = await resolver.resolve("01001000")
        >>> outcome.record.logradouro
        'Praça da Sé'
    """

    def __init__(
        self,
        providers: Iterable[ProviderSpec],
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        key_length: int = CEP_LENGTH,
    ):
        """
        Initialize the resolver and its HTTP connection pool.

        Args:
            providers: Providers in precedence order
            transport: Optional httpx transport (simulated providers, tests)
            user_agent: User-Agent header sent to every provider
            key_length: Required digit count for a key

        Raises:
            ValueError: If the provider list is empty or names repeat
        """
        self._providers = tuple(providers)

        if not self._providers:
            raise ValueError("CepResolver requires at least one provider")

        names = [p.name for p in self._providers]
        if len(set(names)) != len(names):
            raise ValueError(f"Provider names must be unique: {names}")

        self._key_length = key_length
        self._headers = {
            "Accept": "application/json",
            "User-Agent": user_agent,
        }
        self._client = httpx.AsyncClient(transport=transport, follow_redirects=True)

        logger.info(f"CepResolver initialized (providers={' -> '.join(names)})")

    @property
    def providers(self) -> tuple[ProviderSpec, ...]:
        return self._providers

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def resolve(self, raw_key: Optional[str]) -> LookupOutcome:
        """
        Resolve a raw, user-supplied CEP.

        Never raises for an invalid or unknown CEP; both come back as
        failed outcomes.

        Args:
            raw_key: CEP with or without formatting

        Returns:
            LookupOutcome: found / invalid_key / not_found
        """
        try:
            key = normalize_cep(raw_key, self._key_length)
        except KeyValidationError as e:
            logger.debug(f"CEP: rejected key {raw_key!r} - {e}")
            return LookupOutcome.invalid(str(e))

        try:
            record = await self._first_success(key)
        except AllProvidersExhausted as e:
            return LookupOutcome.not_found(str(e))

        return LookupOutcome.found(record)

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    # =========================================================================
    # FALLBACK ORCHESTRATION
    # =========================================================================

    async def _first_success(self, key: str) -> AddressRecord:
        """
        Try each provider in order and return the first record.

        Raises:
            AllProvidersExhausted: If every provider failed
        """
        for provider in self._providers:
            start_time = time.perf_counter()

            try:
                record = await self._invoke(provider, key)
            except ProviderError as e:
                elapsed_ms = (time.perf_counter() - start_time) * 1000
                logger.warning(
                    f"CEP: {provider.name} failed for {key} "
                    f"({type(e).__name__}: {e}) [{elapsed_ms:.0f}ms]"
                )
                continue
            except asyncio.CancelledError:
                logger.info(f"CEP: lookup for {key} cancelled during {provider.name}")
                raise

            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.info(f"CEP: {key} resolved by {provider.name} [{elapsed_ms:.0f}ms]")
            return record

        logger.warning(
            f"CEP: {key} not resolved by any of {len(self._providers)} providers"
        )
        raise AllProvidersExhausted(NOT_FOUND_MESSAGE)

    # =========================================================================
    # PROVIDER INVOCATION
    # =========================================================================

    async def _invoke(self, provider: ProviderSpec, key: str) -> AddressRecord:
        """
        Query one provider under its deadline.

        Raises:
            ProviderTimeout: Deadline exceeded (request cancelled)
            ProviderTransportError: Connection failure or non-2xx status
            ProviderNotFound: HTTP 404 or provider-specific not-found payload
            ProviderMalformedResponse: Body is not JSON or has the wrong shape
        """
        url = provider.build_url(key)
        logger.debug(f"CEP: querying {provider.name} - {url}")

        try:
            response = await asyncio.wait_for(
                self._client.get(
                    url,
                    headers=self._headers,
                    timeout=provider.timeout_seconds,
                ),
                timeout=provider.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise ProviderTimeout(
                f"no response within {provider.timeout_ms}ms", provider.name
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeout(
                f"no response within {provider.timeout_ms}ms ({type(e).__name__})",
                provider.name,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderTransportError(
                str(e) or type(e).__name__, provider.name
            ) from e

        if response.status_code == 404:
            raise ProviderNotFound("HTTP 404", provider.name)

        if not response.is_success:
            raise ProviderTransportError(
                f"HTTP {response.status_code} {response.reason_phrase}", provider.name
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderMalformedResponse(
                "response body is not valid JSON", provider.name
            ) from e

        try:
            return provider.transform(payload)
        except ProviderError as e:
            e.provider = e.provider or provider.name
            raise
        except Exception as e:
            raise ProviderMalformedResponse(
                f"unexpected payload ({type(e).__name__}: {e})", provider.name
            ) from e
