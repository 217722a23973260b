"""
Tests for calldata encoding helpers.
"""

import pytest

from uassistant.core.execution.abi import (
    UNLIMITED_ALLOWANCE,
    encode_address,
    encode_bool,
    encode_bytes32,
    encode_bytes32_array,
    encode_call,
    encode_uint,
    parse_units,
    selector,
)


def test_known_selectors() -> None:
    assert selector("approve(address,uint256)") == "095ea7b3"
    assert selector("transfer(address,uint256)") == "a9059cbb"


def test_encode_call_without_arguments() -> None:
    data = encode_call("stakeAll()")
    assert data.startswith("0x")
    assert len(data) == 2 + 8


def test_encode_approve_unlimited() -> None:
    spender = "0x3333333333333333333333333333333333333333"
    data = encode_call("approve(address,uint256)", [encode_address(spender), encode_uint(UNLIMITED_ALLOWANCE)])

    assert data == "0x095ea7b3" + "0" * 24 + "33" * 20 + "f" * 64


def test_encode_address_lowercases_checksum() -> None:
    assert encode_address("0x" + "AB" * 20) == "0" * 24 + "ab" * 20


def test_encode_uint_bounds() -> None:
    assert encode_uint(1) == "0" * 63 + "1"
    with pytest.raises(ValueError):
        encode_uint(-1)
    with pytest.raises(ValueError):
        encode_uint(UNLIMITED_ALLOWANCE + 1)


def test_encode_bool() -> None:
    assert encode_bool(True).endswith("1")
    assert encode_bool(False) == "0" * 64


def test_encode_bytes32_rejects_short_values() -> None:
    with pytest.raises(ValueError):
        encode_bytes32("0x1234")


def test_encode_bytes32_array() -> None:
    proof = ["0x" + "aa" * 32, "0x" + "bb" * 32]
    assert encode_bytes32_array(proof) == "0" * 63 + "2" + "aa" * 32 + "bb" * 32
    assert encode_bytes32_array([]) == "0" * 64


class TestParseUnits:

    @pytest.mark.parametrize("amount,decimals,expected", [
        ("1", 18, 10**18),
        ("1.5", 18, 1_500_000_000_000_000_000),
        ("0.000001", 6, 1),
        ("2.50", 2, 250),
        ("10.000", 0, 10),
        ("0", 18, 0),
    ])
    def test_conversion(self, amount, decimals, expected):
        assert parse_units(amount, decimals) == expected

    def test_too_many_decimals(self):
        with pytest.raises(ValueError, match="decimal places"):
            parse_units("0.0000001", 6)

    @pytest.mark.parametrize("amount", ["", "abc", "-1", "1e18", ".5"])
    def test_malformed(self, amount):
        with pytest.raises(ValueError):
            parse_units(amount, 18)
