"""Shared fixtures: scripted CEP provider endpoints behind httpx.MockTransport."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

import httpx
import pytest

from cep_lookup.core.config import Settings
from cep_lookup.services.cep import CepResolver, build_providers

VIACEP_HOST = "viacep.com.br"
BRASILAPI_HOST = "brasilapi.com.br"
POSTMON_HOST = "api.postmon.com.br"

Reply = Callable[[httpx.Request], Awaitable[httpx.Response]]


def json_reply(payload, status: int = 200) -> Reply:
    async def reply(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    return reply


def text_reply(body: str, status: int = 200) -> Reply:
    async def reply(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text=body)

    return reply


def sleep_reply(seconds: float) -> Reply:
    async def reply(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(seconds)
        return httpx.Response(200, json={"cep": "00000000"})

    return reply


def connect_error_reply() -> Reply:
    async def reply(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return reply


class ProviderStub:
    """Scripted provider endpoint that records how it was called."""

    def __init__(self, reply: Optional[Reply] = None):
        self.reply = reply or json_reply({"erro": True})
        self.calls = 0
        self.cancelled = False
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        self.requests.append(request)
        try:
            return await self.reply(request)
        except asyncio.CancelledError:
            self.cancelled = True
            raise


def make_transport(stubs: dict[str, ProviderStub]) -> httpx.MockTransport:
    async def handler(request: httpx.Request) -> httpx.Response:
        return await stubs[request.url.host](request)

    return httpx.MockTransport(handler)


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(
        env_mode="production",
        viacep_timeout_ms=200,
        brasilapi_timeout_ms=200,
        postmon_timeout_ms=200,
    )


@pytest.fixture
async def make_resolver(fast_settings):
    """Build resolvers whose three providers are ProviderStubs."""
    created: list[CepResolver] = []

    def factory(
        viacep: ProviderStub,
        brasilapi: ProviderStub,
        postmon: ProviderStub,
        settings: Optional[Settings] = None,
    ) -> CepResolver:
        stubs = {
            VIACEP_HOST: viacep,
            BRASILAPI_HOST: brasilapi,
            POSTMON_HOST: postmon,
        }
        resolver = CepResolver(
            build_providers(settings or fast_settings),
            transport=make_transport(stubs),
        )
        created.append(resolver)
        return resolver

    yield factory

    for resolver in created:
        await resolver.aclose()
