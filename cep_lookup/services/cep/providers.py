"""
CEP Provider Configuration

Each provider answers in its own JSON dialect. The transforms below map
those dialects onto AddressRecord and encode how each provider signals
an unknown CEP.

Precedence (fixed):
    1. ViaCEP     - primary, richest payload
    2. BrasilAPI  - fallback, aggregates several upstream sources
    3. Postmon    - backup

API Documentation:
    https://viacep.com.br
    https://brasilapi.com.br/docs#tag/CEP-V2
    https://postmon.com.br

Version: 1.0.0
"""

from typing import Any, Iterable, Optional

from cep_lookup.core.config import Settings, get_settings
from cep_lookup.services.cep.base import (
    AddressRecord,
    ProviderMalformedResponse,
    ProviderNotFound,
    ProviderSpec,
)

VIACEP = "ViaCEP"
BRASILAPI = "BrasilAPI"
POSTMON = "Postmon"


# =============================================================================
# HELPERS
# =============================================================================

def _require_payload(data: Any, known_fields: Iterable[str]) -> dict:
    """
    Ensure the payload is a JSON object carrying at least one known field.

    Raises:
        ProviderMalformedResponse: For lists, scalars or unrelated objects
    """
    if not isinstance(data, dict):
        raise ProviderMalformedResponse(
            f"expected a JSON object, got {type(data).__name__}"
        )
    if not any(field in data for field in known_fields):
        raise ProviderMalformedResponse("payload has none of the expected fields")
    return data


def _text(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value)


def _optional(data: dict, key: str) -> Optional[str]:
    return _text(data, key) or None


# =============================================================================
# TRANSFORMS
# =============================================================================

VIACEP_FIELDS = (
    "cep", "logradouro", "complemento", "bairro", "localidade",
    "uf", "estado", "regiao", "ibge", "ddd", "siafi", "erro",
)


def transform_viacep(data: Any) -> AddressRecord:
    """
    Map a ViaCEP payload.

    ViaCEP answers unknown CEPs with HTTP 200 and {"erro": true}
    (older deployments send the string "true").
    """
    payload = _require_payload(data, VIACEP_FIELDS)

    erro = payload.get("erro")
    if erro is True or str(erro).lower() == "true":
        raise ProviderNotFound("CEP not found")

    return AddressRecord(
        cep=_text(payload, "cep"),
        logradouro=_text(payload, "logradouro"),
        complemento=_optional(payload, "complemento"),
        bairro=_text(payload, "bairro"),
        localidade=_text(payload, "localidade"),
        uf=_text(payload, "uf"),
        estado=_text(payload, "estado"),
        regiao=_optional(payload, "regiao"),
        ibge=_optional(payload, "ibge"),
        ddd=_optional(payload, "ddd"),
        siafi=_optional(payload, "siafi"),
    )


BRASILAPI_FIELDS = ("cep", "street", "neighborhood", "city", "state")


def transform_brasilapi(data: Any) -> AddressRecord:
    """
    Map a BrasilAPI v2 payload.

    BrasilAPI reports unknown CEPs with HTTP 404, handled by the resolver.
    It only returns the state code, so it doubles as the state name.
    """
    payload = _require_payload(data, BRASILAPI_FIELDS)
    state = _text(payload, "state")

    return AddressRecord(
        cep=_text(payload, "cep"),
        logradouro=_text(payload, "street"),
        bairro=_text(payload, "neighborhood"),
        localidade=_text(payload, "city"),
        uf=state,
        estado=state,
    )


POSTMON_FIELDS = ("cep", "logradouro", "bairro", "cidade", "estado", "estado_info")


def transform_postmon(data: Any) -> AddressRecord:
    """Map a Postmon payload. Unknown CEPs come back as HTTP 404."""
    payload = _require_payload(data, POSTMON_FIELDS)

    uf = _text(payload, "estado")
    estado_info = payload.get("estado_info")
    estado = ""
    if isinstance(estado_info, dict):
        estado = _text(estado_info, "nome")

    cidade_info = payload.get("cidade_info")
    ibge = _optional(payload, "ibge")
    if ibge is None and isinstance(cidade_info, dict):
        ibge = _optional(cidade_info, "codigo_ibge")

    return AddressRecord(
        cep=_text(payload, "cep"),
        logradouro=_text(payload, "logradouro"),
        bairro=_text(payload, "bairro"),
        localidade=_text(payload, "cidade"),
        uf=uf,
        estado=estado or uf,
        ibge=ibge,
    )


# =============================================================================
# PROVIDER LIST
# =============================================================================

def build_providers(settings: Optional[Settings] = None) -> tuple[ProviderSpec, ...]:
    """
    Build the ordered, immutable provider list from settings.

    Only URLs and deadlines are configurable; precedence is not.

    Args:
        settings: Settings to read from (defaults to get_settings())

    Returns:
        tuple[ProviderSpec, ...]: ViaCEP, BrasilAPI, Postmon in that order
    """
    settings = settings or get_settings()

    viacep_base = settings.viacep_url.rstrip("/")
    brasilapi_base = settings.brasilapi_url.rstrip("/")
    postmon_base = settings.postmon_url.rstrip("/")

    return (
        ProviderSpec(
            name=VIACEP,
            build_url=lambda cep: f"{viacep_base}/{cep}/json/",
            timeout_ms=settings.viacep_timeout_ms,
            transform=transform_viacep,
        ),
        ProviderSpec(
            name=BRASILAPI,
            build_url=lambda cep: f"{brasilapi_base}/{cep}",
            timeout_ms=settings.brasilapi_timeout_ms,
            transform=transform_brasilapi,
        ),
        ProviderSpec(
            name=POSTMON,
            build_url=lambda cep: f"{postmon_base}/{cep}",
            timeout_ms=settings.postmon_timeout_ms,
            transform=transform_postmon,
        ),
    )
