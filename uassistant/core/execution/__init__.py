"""
Transaction construction for planned intents.

Builds unsigned, ordered contract calls for client-side signing. Nothing
here signs, broadcasts or simulates transactions.
"""

from .abi import encode_call, parse_units, selector
from .tx_builder import (
    APPROVAL_SKIP_NOTE,
    BENEFICIARY_MISMATCH,
    BuildError,
    BuildResult,
    TransactionBuilder,
)

__all__ = [
    "APPROVAL_SKIP_NOTE",
    "BENEFICIARY_MISMATCH",
    "BuildError",
    "BuildResult",
    "TransactionBuilder",
    "encode_call",
    "parse_units",
    "selector",
]
