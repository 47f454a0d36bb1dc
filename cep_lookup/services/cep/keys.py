"""
CEP Key Normalization and Formatting

Pure helpers with no side effects. A key that fails normalize_cep()
never reaches the provider loop.
"""

import re
from typing import Optional

from cep_lookup.services.cep.base import KeyValidationError

CEP_LENGTH = 8

_NON_DIGITS = re.compile(r"\D", re.ASCII)
_REPEATED_DIGIT = re.compile(r"^(\d)\1+$", re.ASCII)


def strip_non_digits(raw: Optional[str]) -> str:
    """Keep only ASCII digits ("01001-000" -> "01001000")."""
    if not raw:
        return ""
    return _NON_DIGITS.sub("", raw)


def normalize_cep(raw: Optional[str], length: int = CEP_LENGTH) -> str:
    """
    Normalize and validate a user-supplied CEP.

    Args:
        raw: CEP with or without formatting
        length: Required digit count

    Returns:
        str: Digits only

    Raises:
        KeyValidationError: Wrong digit count, or one digit repeated
            throughout ("00000000")
    """
    digits = strip_non_digits(raw)

    if len(digits) != length:
        raise KeyValidationError(f"key invalid: must contain exactly {length} digits")

    if _REPEATED_DIGIT.match(digits):
        raise KeyValidationError("key invalid: repeated digit sequence")

    return digits


def is_valid_cep(raw: Optional[str], length: int = CEP_LENGTH) -> bool:
    try:
        normalize_cep(raw, length)
    except KeyValidationError:
        return False
    return True


def format_cep(raw: str) -> str:
    """
    Format a CEP as 12345-678.

    Input that does not carry exactly 8 digits is returned unchanged.
    """
    digits = strip_non_digits(raw)
    if len(digits) != CEP_LENGTH:
        return raw
    return f"{digits[:5]}-{digits[5:]}"


def format_address(
    rua: str,
    numero: str,
    bairro: str,
    cidade: str,
    estado: str,
    complemento: Optional[str] = None,
    cep: Optional[str] = None,
) -> str:
    """
    Format a full delivery address.

    Example:
        >>> format_address("Rua das Flores", "123", "Centro", "São Paulo", "SP",
        ...                complemento="Apto 45", cep="12345678")
        'Rua das Flores, 123, Apto 45 - Centro, São Paulo/SP - 12345-678'
    """
    head = f"{rua}, {numero}"
    if complemento:
        head = f"{head}, {complemento}"

    text = f"{head} - {bairro}, {cidade}/{estado}"
    if cep:
        text = f"{text} - {format_cep(cep)}"
    return text

