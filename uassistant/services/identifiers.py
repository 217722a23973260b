"""Helpers for validating EVM addresses and normalizing bytes32 identifiers.

uShare identifiers show up in two spellings: a bytes32 hex literal
(``0x`` + 64 hex digits) or the same value printed as a decimal uint256.
Both are parsed into a tagged result once, at the boundary, and collapsed
into the canonical lowercase-preserving bytes32 hex form.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

MAX_UINT256 = 2**256 - 1

_EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_BYTES32_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")
_DECIMAL_UINT_RE = re.compile(r"^\d+$")

BYTES32_IN_TEXT = re.compile(r"0x[a-fA-F0-9]{64}(?![a-fA-F0-9])")
ADDRESS_IN_TEXT = re.compile(r"0x[a-fA-F0-9]{40}(?![a-fA-F0-9])")
# Large decimals only, so "buy 100" is never read as an identifier.
LARGE_DECIMAL_IN_TEXT = re.compile(r"(?<![\w.])\d{10,}(?![\w.])")


def is_valid_evm_address(address: Optional[str]) -> bool:
    if not address:
        return False
    return bool(_EVM_ADDRESS_RE.fullmatch(address))


def is_bytes32_hex(value: Optional[str]) -> bool:
    if not value:
        return False
    return bool(_BYTES32_RE.fullmatch(value))


def same_address(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive address comparison (checksum casing is not significant)."""

    if not a or not b:
        return False
    return a.lower() == b.lower()


def decimal_to_bytes32(dec: str) -> str:
    """Convert a decimal uint string to a zero-padded bytes32 hex literal.

    Raises:
        ValueError: when the string is not a decimal uint or exceeds 256 bits.
    """

    text = dec.strip()
    if not _DECIMAL_UINT_RE.fullmatch(text):
        raise ValueError(f"Expected a decimal uint string, got {dec!r}")
    value = int(text)
    if value > MAX_UINT256:
        raise ValueError("Identifier is too large for bytes32")
    return "0x" + format(value, "064x")


@dataclass(frozen=True)
class HexId:
    value: str

    def canonical(self) -> str:
        return self.value


@dataclass(frozen=True)
class DecimalId:
    value: str

    def canonical(self) -> str:
        return decimal_to_bytes32(self.value)


ParsedId = Union[HexId, DecimalId]


def parse_identifier(raw: str) -> Optional[ParsedId]:
    """Classify a raw identifier string, or return ``None`` if it is neither form."""

    text = raw.strip()
    if _BYTES32_RE.fullmatch(text):
        return HexId(text)
    if _DECIMAL_UINT_RE.fullmatch(text):
        return DecimalId(text)
    return None


def coerce_identifier(raw: str) -> str:
    """Normalize a hex or decimal identifier into canonical bytes32 hex.

    Raises:
        ValueError: when ``raw`` is neither form or does not fit in 256 bits.
    """

    parsed = parse_identifier(raw)
    if parsed is None:
        raise ValueError("Identifier must be bytes32 hex or a decimal uint string")
    return parsed.canonical()


__all__ = [
    "MAX_UINT256",
    "BYTES32_IN_TEXT",
    "ADDRESS_IN_TEXT",
    "LARGE_DECIMAL_IN_TEXT",
    "HexId",
    "DecimalId",
    "ParsedId",
    "is_valid_evm_address",
    "is_bytes32_hex",
    "same_address",
    "decimal_to_bytes32",
    "parse_identifier",
    "coerce_identifier",
]
