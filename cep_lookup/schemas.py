"""
Pydantic Schemas for Request/Response Validation

Response models for the CEP lookup API.

Version: 1.0.0
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from cep_lookup.services.cep.base import AddressRecord
from cep_lookup.services.cep.keys import format_address, format_cep


# =============================================================================
# ADDRESS SCHEMAS
# =============================================================================

class AddressResponse(BaseModel):
    """Canonical address for a CEP."""
    cep: str = Field(..., examples=["01001-000"])
    formatted_cep: str = Field(..., examples=["01001-000"])
    logradouro: str = Field(..., examples=["Praça da Sé"])
    complemento: Optional[str] = None
    bairro: str = Field(..., examples=["Sé"])
    localidade: str = Field(..., examples=["São Paulo"])
    uf: str = Field(..., examples=["SP"])
    estado: str = Field(..., examples=["São Paulo"])
    regiao: Optional[str] = None
    ibge: Optional[str] = None
    ddd: Optional[str] = None
    siafi: Optional[str] = None
    endereco_formatado: Optional[str] = Field(
        default=None,
        description="Full delivery address, present when a street number is given",
        examples=["Praça da Sé, 100 - Sé, São Paulo/SP - 01001-000"],
    )

    @classmethod
    def from_record(
        cls,
        record: AddressRecord,
        numero: Optional[str] = None,
        complemento: Optional[str] = None,
    ) -> "AddressResponse":
        """
        Build the response, optionally composing the full delivery address.

        Args:
            record: Resolved address
            numero: Street number supplied by the customer
            complemento: Customer's complement (overrides the CEP's own)
        """
        endereco = None
        if numero:
            endereco = format_address(
                rua=record.logradouro,
                numero=numero,
                bairro=record.bairro,
                cidade=record.localidade,
                estado=record.uf,
                complemento=complemento,
                cep=record.cep,
            )

        return cls(
            **record.to_dict(),
            formatted_cep=format_cep(record.cep),
            endereco_formatado=endereco,
        )


# =============================================================================
# SYSTEM SCHEMAS
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class ProviderInfo(BaseModel):
    """One configured CEP provider."""
    name: str
    timeout_ms: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    environment: str
    providers: List[ProviderInfo]
    cache_entries: int
    timestamp: datetime
