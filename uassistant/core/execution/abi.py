"""
Minimal ABI calldata encoding for the contracts the assistant targets.

Only the static head/tail layout needed by our entry points is implemented:
uint256, bool, address, bytes32, a static tuple of those, and bytes32[].
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Sequence

from eth_utils import keccak

from ...services.identifiers import MAX_UINT256

# Maximum uint256 for unlimited approval
UNLIMITED_ALLOWANCE = MAX_UINT256

_DECIMAL_RE = re.compile(r"^(\d+)(?:\.(\d+))?$")


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


@lru_cache(maxsize=64)
def selector(signature: str) -> str:
    """4-byte function selector (hex, no 0x prefix)."""
    return keccak(text=signature)[:4].hex()


def encode_uint(value: int) -> str:
    if value < 0:
        raise ValueError("Value must be non-negative")
    if value > MAX_UINT256:
        raise ValueError("Value does not fit in uint256")
    return format(value, "064x")


def encode_bool(value: bool) -> str:
    return encode_uint(1 if value else 0)


def encode_address(address: str) -> str:
    addr = _strip_0x(address).lower()
    if len(addr) != 40:
        raise ValueError(f"Invalid address length: {address}")
    return addr.rjust(64, "0")


def encode_bytes32(value: str) -> str:
    raw = _strip_0x(value).lower()
    if len(raw) != 64:
        raise ValueError(f"Invalid bytes32 length: {value}")
    return raw


def encode_bytes32_array(values: Sequence[str]) -> str:
    """Tail encoding of a dynamic bytes32[] (length word followed by elements)."""
    return encode_uint(len(values)) + "".join(encode_bytes32(v) for v in values)


def encode_call(signature: str, head: Iterable[str] = (), tail: str = "") -> str:
    """Assemble 0x-prefixed calldata from pre-encoded head words and tail."""
    return "0x" + selector(signature) + "".join(head) + tail


def parse_units(amount: str, decimals: int) -> int:
    """Convert a human decimal string into integer base units.

    ``parse_units("1.5", 18) == 1_500_000_000_000_000_000``. Works on the
    string digits only; no floating point is involved.

    Raises:
        ValueError: malformed amount or more fractional digits than ``decimals``.
    """
    match = _DECIMAL_RE.fullmatch(amount.strip())
    if not match:
        raise ValueError(f"Invalid amount: {amount!r}")
    whole, fraction = match.group(1), match.group(2) or ""
    fraction = fraction.rstrip("0")
    if len(fraction) > decimals:
        raise ValueError(f"Amount {amount} has more than {decimals} decimal places")
    return int(whole) * 10**decimals + int(fraction.ljust(decimals, "0") or "0")
