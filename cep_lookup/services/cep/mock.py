"""
Mock CEP Provider Transport

Simulates ViaCEP, BrasilAPI and Postmon without making real API calls.
Used in development mode (ENV_MODE=development) for local testing.

The resolver itself is unchanged in development: only its httpx
transport is swapped, so the whole fallback path (timeouts, status
codes, payload transforms) runs exactly as in production.

Behavior:
    - Answers from a small seed dataset of real CEPs
    - Each provider replies in its own native payload shape
    - Unknown CEPs: ViaCEP returns {"erro": true}, the others HTTP 404
    - Simulates network latency (50-300ms by default)
    - 5% random provider failure rate for testing the fallback path

Version: 1.0.0
"""

import asyncio
import logging
import random
import re
from typing import Optional

import httpx

from cep_lookup.services.cep.providers import BRASILAPI, POSTMON, VIACEP

logger = logging.getLogger(__name__)


# Seed dataset in ViaCEP's field layout
SEED_ADDRESSES: dict[str, dict[str, str]] = {
    "01001000": {
        "cep": "01001-000",
        "logradouro": "Praça da Sé",
        "complemento": "lado ímpar",
        "bairro": "Sé",
        "localidade": "São Paulo",
        "uf": "SP",
        "estado": "São Paulo",
        "regiao": "Sudeste",
        "ibge": "3550308",
        "ddd": "11",
        "siafi": "7107",
    },
    "20040002": {
        "cep": "20040-002",
        "logradouro": "Avenida Rio Branco",
        "complemento": "de 1 ao fim - lado ímpar",
        "bairro": "Centro",
        "localidade": "Rio de Janeiro",
        "uf": "RJ",
        "estado": "Rio de Janeiro",
        "regiao": "Sudeste",
        "ibge": "3304557",
        "ddd": "21",
        "siafi": "6001",
    },
    "30130010": {
        "cep": "30130-010",
        "logradouro": "Praça Sete de Setembro",
        "complemento": "",
        "bairro": "Centro",
        "localidade": "Belo Horizonte",
        "uf": "MG",
        "estado": "Minas Gerais",
        "regiao": "Sudeste",
        "ibge": "3106200",
        "ddd": "31",
        "siafi": "4123",
    },
}

_CEP_IN_PATH = re.compile(r"(\d{8})")


def _viacep_payload(address: dict[str, str]) -> dict:
    return dict(address)


def _brasilapi_payload(address: dict[str, str]) -> dict:
    return {
        "cep": address["cep"].replace("-", ""),
        "state": address["uf"],
        "city": address["localidade"],
        "neighborhood": address["bairro"],
        "street": address["logradouro"],
        "service": "open-cep",
    }


def _postmon_payload(address: dict[str, str]) -> dict:
    return {
        "cep": address["cep"].replace("-", ""),
        "logradouro": address["logradouro"],
        "bairro": address["bairro"],
        "cidade": address["localidade"],
        "estado": address["uf"],
        "estado_info": {"nome": address["estado"]},
        "cidade_info": {"codigo_ibge": address["ibge"]},
    }


class MockProviderTransport(httpx.AsyncBaseTransport):
    """
    httpx transport that impersonates the CEP providers.

    Attributes:
        hosts: Maps provider hostnames to provider names
        failure_rate: Probability of a simulated provider outage (0.0-1.0)
        min_latency: Minimum response time in seconds
        max_latency: Maximum response time in seconds
        addresses: CEP (digits only) -> ViaCEP-shaped address

    Example:
        >>> transport = MockProviderTransport({"viacep.com.br": "ViaCEP"})
        >>> async with httpx.AsyncClient(transport=transport) as client:
        ...     r = await client.get("https://viacep.com.br/ws/01001000/json/")
        >>> r.json()["localidade"]
        'São Paulo'
    """

    def __init__(
        self,
        hosts: dict[str, str],
        failure_rate: float = 0.05,
        min_latency: float = 0.05,
        max_latency: float = 0.3,
        addresses: Optional[dict[str, dict[str, str]]] = None,
    ):
        self.hosts = dict(hosts)
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.addresses = SEED_ADDRESSES if addresses is None else addresses

        logger.info(
            f"MockProviderTransport initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"seed={len(self.addresses)} CEPs)"
        )

    async def _simulate_latency(self) -> None:
        if self.max_latency <= 0:
            return
        await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        """Determine if this request should simulate a provider outage."""
        return random.random() < self.failure_rate

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        provider = self.hosts.get(request.url.host)
        if provider is None:
            raise httpx.ConnectError(
                f"Mock: unknown host {request.url.host}", request=request
            )

        await self._simulate_latency()

        if self._should_fail():
            logger.debug(f"Mock: simulated outage for {provider}")
            return httpx.Response(503, json={"message": "Service Unavailable"})

        match = _CEP_IN_PATH.search(request.url.path)
        address = self.addresses.get(match.group(1)) if match else None

        if provider == VIACEP:
            if address is None:
                return httpx.Response(200, json={"erro": True})
            return httpx.Response(200, json=_viacep_payload(address))

        if provider == BRASILAPI:
            if address is None:
                return httpx.Response(
                    404,
                    json={
                        "name": "CepPromiseError",
                        "message": "Todos os serviços de CEP retornaram erro.",
                        "type": "service_error",
                    },
                )
            return httpx.Response(200, json=_brasilapi_payload(address))

        if provider == POSTMON:
            if address is None:
                return httpx.Response(404)
            return httpx.Response(200, json=_postmon_payload(address))

        raise httpx.ConnectError(f"Mock: no simulation for {provider}", request=request)
