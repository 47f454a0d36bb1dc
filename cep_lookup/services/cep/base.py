"""
CEP Lookup Data Model

Defines the shapes shared by every CEP provider and the resolver:

    - ProviderSpec: one external source (name, URL builder, deadline, transform)
    - AddressRecord: the canonical address all provider payloads map into
    - LookupOutcome: what the resolver hands back to its caller
    - The lookup error taxonomy

Providers never share a base class. Each ProviderSpec bundles its own
transform function, keeping provider-specific parsing local.

Version: 1.0.0
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Optional


# =============================================================================
# ERRORS
# =============================================================================

class CepLookupError(Exception):
    """Base class for every CEP lookup error."""


class KeyValidationError(CepLookupError):
    """The raw key does not have the required shape. Raised before any network call."""


class ProviderError(CepLookupError):
    """
    A single provider failed to resolve a key.
    
    Always recovered by the resolver, which moves on to the next provider.
    
    Attributes:
        provider: Name of the provider that failed
    """
    
    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ProviderNotFound(ProviderError):
    """The provider explicitly reports the key as unknown."""


class ProviderTimeout(ProviderError):
    """The provider did not answer before its deadline."""


class ProviderTransportError(ProviderError):
    """Connection failure or an unsuccessful HTTP status."""


class ProviderMalformedResponse(ProviderError):
    """The payload does not match the provider's expected shape."""


class AllProvidersExhausted(CepLookupError):
    """Every configured provider failed for the key."""


# =============================================================================
# CANONICAL RECORD
# =============================================================================

@dataclass(frozen=True)
class AddressRecord:
    """
    Canonical address returned for a CEP, whatever provider answered.
    
    Attributes:
        cep: Postal code as reported by the provider
        logradouro: Street name
        bairro: Neighborhood
        localidade: City
        uf: Two-letter state code
        estado: State name (falls back to the state code when unknown)
        complemento: Address complement, if any
        regiao: Region name (ViaCEP only)
        ibge: IBGE municipality code
        ddd: Telephone area code
        siafi: SIAFI municipality code
    """
    cep: str = ""
    logradouro: str = ""
    bairro: str = ""
    localidade: str = ""
    uf: str = ""
    estado: str = ""
    complemento: Optional[str] = None
    regiao: Optional[str] = None
    ibge: Optional[str] = None
    ddd: Optional[str] = None
    siafi: Optional[str] = None
    
    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


# =============================================================================
# PROVIDER CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class ProviderSpec:
    """
    One external CEP source.
    
    Attributes:
        name: Unique provider name, used in diagnostics
        build_url: Maps a normalized key to the provider endpoint
        timeout_ms: Hard deadline for a single call
        transform: Maps the decoded JSON payload to an AddressRecord.
            Must raise ProviderNotFound when the payload says the key
            is unknown, and ProviderMalformedResponse for unexpected shapes.
    
    Raises:
        ValueError: If the name is empty or the timeout is not positive
    """
    name: str
    build_url: Callable[[str], str]
    timeout_ms: int
    transform: Callable[[Any], AddressRecord]
    
    def __post_init__(self):
        if not self.name:
            raise ValueError("ProviderSpec requires a name")
        if self.timeout_ms <= 0:
            raise ValueError(f"Provider {self.name}: timeout_ms must be positive")
    
    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


# =============================================================================
# OUTCOME
# =============================================================================

class OutcomeStatus(str, Enum):
    FOUND = "found"
    INVALID_KEY = "invalid_key"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class LookupOutcome:
    """
    Result of a single resolve() call.
    
    Exactly one of record / error_message is set. Which provider
    answered is logged, not returned.
    """
    status: OutcomeStatus
    record: Optional[AddressRecord] = None
    error_message: Optional[str] = None
    
    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.FOUND
    
    @classmethod
    def found(cls, record: AddressRecord) -> "LookupOutcome":
        return cls(status=OutcomeStatus.FOUND, record=record)
    
    @classmethod
    def invalid(cls, message: str) -> "LookupOutcome":
        return cls(status=OutcomeStatus.INVALID_KEY, error_message=message)
    
    @classmethod
    def not_found(cls, message: str) -> "LookupOutcome":
        return cls(status=OutcomeStatus.NOT_FOUND, error_message=message)
