"""Tests for CepResolver: validation, ordered fallback, deadlines, cancellation."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from cep_lookup.core.config import Settings
from cep_lookup.services.cep import (
    AddressRecord,
    CepResolver,
    OutcomeStatus,
    ProviderMalformedResponse,
    ProviderSpec,
    build_providers,
)
from cep_lookup.services.cep.resolver import NOT_FOUND_MESSAGE
from tests.conftest import (
    ProviderStub,
    connect_error_reply,
    json_reply,
    make_transport,
    sleep_reply,
    text_reply,
)

RESOLVER_LOGGER = "cep_lookup.services.cep.resolver"

VIACEP_SE = {
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
}

BRASILAPI_SE = {
    "cep": "01001000",
    "street": "Praça da Sé",
    "neighborhood": "Sé",
    "city": "São Paulo",
    "state": "SP",
}

POSTMON_SE = {
    "cep": "01001000",
    "logradouro": "Praça da Sé",
    "bairro": "Sé",
    "cidade": "São Paulo",
    "estado": "SP",
    "estado_info": {"nome": "São Paulo"},
}


class TestKeyValidation:
    @pytest.mark.parametrize(
        "raw",
        ["abc12", "", None, "1234567", "123456789", "0100-100", "٠١٠٠١٠٠٠", "０１００１０００"],
    )
    async def test_invalid_key_never_reaches_providers(self, make_resolver, raw) -> None:
        stubs = [ProviderStub(json_reply(VIACEP_SE)) for _ in range(3)]
        resolver = make_resolver(*stubs)

        outcome = await resolver.resolve(raw)

        assert outcome.status == OutcomeStatus.INVALID_KEY
        assert outcome.error_message == "key invalid: must contain exactly 8 digits"
        assert outcome.record is None
        assert [s.calls for s in stubs] == [0, 0, 0]

    async def test_repeated_digit_key_rejected(self, make_resolver) -> None:
        stubs = [ProviderStub(json_reply(VIACEP_SE)) for _ in range(3)]
        resolver = make_resolver(*stubs)

        outcome = await resolver.resolve("00000-000")

        assert outcome.status == OutcomeStatus.INVALID_KEY
        assert [s.calls for s in stubs] == [0, 0, 0]

    async def test_formatted_key_is_normalized_before_the_request(self, make_resolver) -> None:
        viacep = ProviderStub(json_reply(VIACEP_SE))
        resolver = make_resolver(viacep, ProviderStub(), ProviderStub())

        outcome = await resolver.resolve(" 01001-000 ")

        assert outcome.ok
        assert str(viacep.requests[0].url) == "https://viacep.com.br/ws/01001000/json/"


class TestOrderedFallback:
    async def test_first_provider_success_short_circuits(self, make_resolver) -> None:
        viacep = ProviderStub(json_reply(VIACEP_SE))
        brasilapi = ProviderStub(json_reply(BRASILAPI_SE))
        postmon = ProviderStub(json_reply(POSTMON_SE))
        resolver = make_resolver(viacep, brasilapi, postmon)

        outcome = await resolver.resolve("01001000")

        assert outcome.status == OutcomeStatus.FOUND
        assert outcome.record.ibge == "3550308"
        assert outcome.record.regiao == "Sudeste"
        assert viacep.calls == 1
        assert brasilapi.calls == 0
        assert postmon.calls == 0

    async def test_viacep_erro_falls_through_to_brasilapi(self, make_resolver) -> None:
        viacep = ProviderStub(json_reply({"erro": True}))
        brasilapi = ProviderStub(json_reply(BRASILAPI_SE))
        postmon = ProviderStub(json_reply(POSTMON_SE))
        resolver = make_resolver(viacep, brasilapi, postmon)

        outcome = await resolver.resolve("01001000")

        assert outcome.ok
        assert outcome.record.localidade == "São Paulo"
        assert outcome.record.uf == "SP"
        assert outcome.record.logradouro == "Praça da Sé"
        assert outcome.record.ibge is None
        assert (viacep.calls, brasilapi.calls, postmon.calls) == (1, 1, 0)

    async def test_no_merging_across_providers(self, make_resolver) -> None:
        viacep = ProviderStub(json_reply({"erro": True}))
        brasilapi = ProviderStub(json_reply({"cep": "01001000", "city": "São Paulo"}))
        postmon = ProviderStub(json_reply(POSTMON_SE))
        resolver = make_resolver(viacep, brasilapi, postmon)

        outcome = await resolver.resolve("01001000")

        assert outcome.record == AddressRecord(cep="01001000", localidade="São Paulo")
        assert postmon.calls == 0

    @pytest.mark.parametrize(
        "viacep_reply",
        [
            json_reply({"message": "boom"}, status=500),
            json_reply({"message": "slow down"}, status=429),
            text_reply("<html>maintenance</html>"),
            json_reply(["not", "an", "object"]),
            json_reply({"unexpected": "shape"}),
            connect_error_reply(),
        ],
        ids=["http-500", "http-429", "non-json", "json-list", "unknown-fields", "connect-error"],
    )
    async def test_any_failure_moves_to_next_provider(self, make_resolver, viacep_reply) -> None:
        viacep = ProviderStub(viacep_reply)
        brasilapi = ProviderStub(json_reply(BRASILAPI_SE))
        resolver = make_resolver(viacep, brasilapi, ProviderStub())

        outcome = await resolver.resolve("01001000")

        assert outcome.ok
        assert outcome.record.bairro == "Sé"
        assert brasilapi.calls == 1

    async def test_http_404_counts_as_not_found(self, make_resolver) -> None:
        brasilapi = ProviderStub(json_reply({"name": "CepPromiseError"}, status=404))
        postmon = ProviderStub(json_reply(POSTMON_SE))
        resolver = make_resolver(ProviderStub(), brasilapi, postmon)

        outcome = await resolver.resolve("01001000")

        assert outcome.ok
        assert outcome.record.estado == "São Paulo"
        assert postmon.calls == 1

    async def test_transform_crash_is_recovered(self) -> None:
        def broken(payload):
            return AddressRecord(**payload["nested"])

        calls = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            return httpx.Response(200, json={"cep": "01001000", "localidade": "São Paulo"})

        providers = (
            ProviderSpec("broken", lambda cep: f"https://broken.test/{cep}", 200, broken),
            ProviderSpec(
                "simple",
                lambda cep: f"https://simple.test/{cep}",
                200,
                lambda payload: AddressRecord(**payload),
            ),
        )
        resolver = CepResolver(providers, transport=httpx.MockTransport(handler))
        try:
            outcome = await resolver.resolve("01001000")
        finally:
            await resolver.aclose()

        assert outcome.ok
        assert outcome.record.localidade == "São Paulo"
        assert calls == ["broken.test", "simple.test"]

    async def test_all_providers_failing_returns_generic_not_found(
        self, make_resolver, caplog
    ) -> None:
        caplog.set_level(logging.WARNING, logger=RESOLVER_LOGGER)
        viacep = ProviderStub(json_reply({"erro": True}))
        brasilapi = ProviderStub(sleep_reply(5))
        postmon = ProviderStub(connect_error_reply())
        resolver = make_resolver(viacep, brasilapi, postmon)

        outcome = await resolver.resolve("12345678")

        assert outcome.status == OutcomeStatus.NOT_FOUND
        assert outcome.error_message == NOT_FOUND_MESSAGE
        assert outcome.record is None
        for name in ("ViaCEP", "BrasilAPI", "Postmon"):
            assert name not in outcome.error_message

        failures = [r for r in caplog.records if "failed for 12345678" in r.getMessage()]
        assert len(failures) == 3
        assert [r.levelno for r in failures] == [logging.WARNING] * 3
        assert "ProviderNotFound" in failures[0].getMessage()
        assert "ProviderTimeout" in failures[1].getMessage()
        assert "ProviderTransportError" in failures[2].getMessage()
        assert [f.getMessage().split()[1] for f in failures] == ["ViaCEP", "BrasilAPI", "Postmon"]

    async def test_same_key_twice_gives_same_outcome(self, make_resolver) -> None:
        viacep = ProviderStub(json_reply({"erro": True}))
        brasilapi = ProviderStub(json_reply(BRASILAPI_SE))
        postmon = ProviderStub(json_reply(POSTMON_SE))
        resolver = make_resolver(viacep, brasilapi, postmon)

        first = await resolver.resolve("01001000")
        second = await resolver.resolve("01001-000")

        assert first == second
        assert (viacep.calls, brasilapi.calls, postmon.calls) == (2, 2, 0)

    async def test_sends_json_accept_and_user_agent(self, make_resolver) -> None:
        viacep = ProviderStub(json_reply(VIACEP_SE))
        resolver = make_resolver(viacep, ProviderStub(), ProviderStub())

        await resolver.resolve("01001000")

        headers = viacep.requests[0].headers
        assert headers["accept"] == "application/json"
        assert headers["user-agent"] == "WebiDelivery/1.0"


class TestDeadlines:
    async def test_timed_out_provider_is_cancelled_and_next_one_answers(self) -> None:
        settings = Settings(
            env_mode="production",
            viacep_timeout_ms=100,
            brasilapi_timeout_ms=1000,
            postmon_timeout_ms=1000,
        )
        viacep = ProviderStub(sleep_reply(5))
        brasilapi = ProviderStub(json_reply(BRASILAPI_SE))
        resolver = CepResolver(
            build_providers(settings),
            transport=make_transport(
                {
                    "viacep.com.br": viacep,
                    "brasilapi.com.br": brasilapi,
                    "api.postmon.com.br": ProviderStub(),
                }
            ),
        )
        loop = asyncio.get_running_loop()

        try:
            start = loop.time()
            outcome = await resolver.resolve("01001000")
            elapsed = loop.time() - start
        finally:
            await resolver.aclose()

        assert outcome.ok
        assert outcome.record.localidade == "São Paulo"
        assert elapsed >= 0.099
        assert elapsed < 2.0
        assert viacep.cancelled is True

    async def test_caller_cancellation_reaches_the_provider_in_flight(self) -> None:
        settings = Settings(env_mode="production", viacep_timeout_ms=10000)
        viacep = ProviderStub(sleep_reply(30))
        brasilapi = ProviderStub(json_reply(BRASILAPI_SE))
        resolver = CepResolver(
            build_providers(settings),
            transport=make_transport(
                {
                    "viacep.com.br": viacep,
                    "brasilapi.com.br": brasilapi,
                    "api.postmon.com.br": ProviderStub(),
                }
            ),
        )

        try:
            task = asyncio.create_task(resolver.resolve("01001000"))
            while viacep.calls == 0:
                await asyncio.sleep(0.01)

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await asyncio.wait_for(task, timeout=2)
        finally:
            await resolver.aclose()

        assert viacep.cancelled is True
        assert brasilapi.calls == 0

    async def test_concurrent_lookups_do_not_interfere(self, make_resolver) -> None:
        async def by_key(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.01)
            if "01001000" in request.url.path:
                return httpx.Response(200, json=VIACEP_SE)
            return httpx.Response(200, json={**VIACEP_SE, "cep": "20040-002", "localidade": "Rio de Janeiro", "uf": "RJ"})

        resolver = make_resolver(ProviderStub(by_key), ProviderStub(), ProviderStub())

        sp, rj = await asyncio.gather(
            resolver.resolve("01001000"),
            resolver.resolve("20040002"),
        )

        assert sp.record.uf == "SP"
        assert rj.record.uf == "RJ"


class TestConfigurationErrors:
    def test_empty_provider_list(self) -> None:
        with pytest.raises(ValueError):
            CepResolver([])

    def test_duplicate_provider_names(self) -> None:
        spec = ProviderSpec("same", lambda cep: cep, 100, lambda p: AddressRecord())
        with pytest.raises(ValueError, match="unique"):
            CepResolver([spec, spec])

    @pytest.mark.parametrize("name,timeout_ms", [("", 100), ("ViaCEP", 0), ("ViaCEP", -5)])
    def test_invalid_provider_spec(self, name, timeout_ms) -> None:
        with pytest.raises(ValueError):
            ProviderSpec(name, lambda cep: cep, timeout_ms, lambda p: AddressRecord())

    def test_provider_errors_are_distinguishable(self) -> None:
        error = ProviderMalformedResponse("bad", "ViaCEP")
        assert error.provider == "ViaCEP"
        assert str(error) == "bad"
