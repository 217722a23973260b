"""
Transaction builder: maps a planned intent onto ordered contract calls.

Handles:
- Staking (stake / unstake / stakeAll / unstakeAll)
- Governance votes
- uShare purchases (USDC approval prepended to the market buy)
- uShare sales, when the market exposes them
- Vesting claims (beneficiary must match the connected account)

``build`` never raises: every failure turns into an empty transaction list
plus a warning the user can act on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ...services.identifiers import same_address
from ...services.offerings import OfferingRegistry
from ...types import ChatContext, TransactionPreview
from ..planning.models import ActionType, Intent
from .abi import (
    UNLIMITED_ALLOWANCE,
    encode_address,
    encode_bool,
    encode_bytes32,
    encode_bytes32_array,
    encode_call,
    encode_uint,
    parse_units,
)

logger = logging.getLogger(__name__)

# Entry points
APPROVE_SIGNATURE = "approve(address,uint256)"
STAKE_SIGNATURE = "stake(uint256)"
UNSTAKE_SIGNATURE = "unstake(uint256)"
STAKE_ALL_SIGNATURE = "stakeAll()"
UNSTAKE_ALL_SIGNATURE = "unstakeAll()"
VOTE_SIGNATURE = "vote(uint256,bool)"
BUY_SIGNATURE = "buy(bytes32,uint256)"
SELL_SIGNATURE = "sell(bytes32,uint256)"
CLAIM_SIGNATURE = "claim((address,uint256,uint256,uint256,uint256),bytes32[])"

# Words in the static vesting tuple, followed by the bytes32[] offset word
_VESTING_TUPLE_WORDS = 5

APPROVAL_SKIP_NOTE = (
    "Transaction #1 approves USDC spending by the uShare market. "
    "You can skip it if your allowance already covers this purchase."
)
BENEFICIARY_MISMATCH = (
    "Refusing to build the claim: the connected account is not the beneficiary of this vesting record."
)


class BuildError(Exception):
    """A transaction could not be built; the message is shown to the user."""


@dataclass(frozen=True)
class BuildResult:
    txs: List[TransactionPreview] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


Handler = Callable[[Intent, Optional[ChatContext], OfferingRegistry, List[str]], List[TransactionPreview]]


class TransactionBuilder:
    """
    Builds unsigned transaction previews for planned intents.

    Chain id, contract addresses and default decimals come from settings;
    nothing user-supplied is ever used as a call target.
    """

    def __init__(self, settings: Any) -> None:
        self.settings = settings
        self._handlers: Dict[ActionType, Handler] = {
            ActionType.STAKE: self._build_stake,
            ActionType.UNSTAKE: self._build_stake,
            ActionType.STAKE_ALL: self._build_stake_all,
            ActionType.UNSTAKE_ALL: self._build_stake_all,
            ActionType.VOTE: self._build_vote,
            ActionType.BUY_ASSET: self._build_buy,
            ActionType.SELL_ASSET: self._build_sell,
            ActionType.CLAIM_VESTING: self._build_claim,
        }

    def build(
        self,
        intent: Intent,
        context: Optional[ChatContext],
        registry: OfferingRegistry,
    ) -> BuildResult:
        """Build the ordered transactions for ``intent``.

        Returns:
            BuildResult with the transactions and the intent warnings plus any
            notes added while building.
        """
        warnings = list(intent.warnings)
        handler = self._handlers.get(intent.action_type)
        if handler is None:
            return BuildResult(txs=[], warnings=warnings)

        try:
            txs = handler(intent, context, registry, warnings)
        except BuildError as exc:
            _append(warnings, str(exc))
            return BuildResult(txs=[], warnings=warnings)
        except Exception as exc:
            logger.warning("Transaction build failed for %s: %s", intent.action_type.value, exc, exc_info=True)
            _append(warnings, f"Could not build the transaction: {exc}")
            return BuildResult(txs=[], warnings=warnings)

        return BuildResult(txs=txs, warnings=warnings)

    # ------------------------------------------------------------------
    # Per-action handlers
    # ------------------------------------------------------------------

    def _build_stake(self, intent, context, registry, warnings) -> List[TransactionPreview]:
        amount = self._require_amount(intent)
        staking = self._require_address("urano_staking", "Staking contract")
        units = self._to_units(amount, self.settings.urano_decimals)
        signature = STAKE_SIGNATURE if intent.action_type == ActionType.STAKE else UNSTAKE_SIGNATURE
        return [self._preview(staking, encode_call(signature, [encode_uint(units)]))]

    def _build_stake_all(self, intent, context, registry, warnings) -> List[TransactionPreview]:
        staking = self._require_address("urano_staking", "Staking contract")
        signature = STAKE_ALL_SIGNATURE if intent.action_type == ActionType.STAKE_ALL else UNSTAKE_ALL_SIGNATURE
        return [self._preview(staking, encode_call(signature))]

    def _build_vote(self, intent, context, registry, warnings) -> List[TransactionPreview]:
        missing = []
        if intent.proposal_id is None:
            missing.append("proposal id")
        if intent.vote is None:
            missing.append("vote choice (yes or no)")
        if missing:
            raise BuildError(f"Missing {' and '.join(missing)}.")

        governance = self._require_address("urano_governance", "Governance contract")
        data = encode_call(VOTE_SIGNATURE, [encode_uint(intent.proposal_id), encode_bool(intent.vote)])
        return [self._preview(governance, data)]

    def _build_buy(self, intent, context, registry, warnings) -> List[TransactionPreview]:
        missing = []
        if not intent.amount:
            missing.append("amount")
        if not intent.asset_id:
            missing.append("uShare ID")
        if missing:
            raise BuildError(f"Missing {' and '.join(missing)}.")

        market = self._require_address("ushare_market", "uShare market contract")
        usdc = self._require_address("usdc", "USDC token")

        offering = registry.find_by_id(intent.asset_id)
        decimals = offering.decimals if offering and offering.decimals else self.settings.ushare_decimals
        units = self._to_units(intent.amount, decimals)

        approve = encode_call(APPROVE_SIGNATURE, [encode_address(market), encode_uint(UNLIMITED_ALLOWANCE)])
        buy = encode_call(BUY_SIGNATURE, [encode_bytes32(intent.asset_id), encode_uint(units)])

        _append(warnings, APPROVAL_SKIP_NOTE)
        if offering:
            _append(warnings, f"Buying {intent.amount} of {offering.label}.")

        return [self._preview(usdc, approve), self._preview(market, buy)]

    def _build_sell(self, intent, context, registry, warnings) -> List[TransactionPreview]:
        if not self.settings.market_supports_sell:
            raise BuildError("Selling uShares is not supported by the market contract.")
        if not intent.asset_id:
            raise BuildError("Missing uShare to sell (name, symbol or uShare ID).")
        amount = self._require_amount(intent)

        market = self._require_address("ushare_market", "uShare market contract")
        offering = registry.find_by_id(intent.asset_id)
        decimals = offering.decimals if offering and offering.decimals else self.settings.ushare_decimals
        units = self._to_units(amount, decimals)

        data = encode_call(SELL_SIGNATURE, [encode_bytes32(intent.asset_id), encode_uint(units)])
        if offering:
            _append(warnings, f"Selling {amount} of {offering.label}.")
        return [self._preview(market, data)]

    def _build_claim(self, intent, context, registry, warnings) -> List[TransactionPreview]:
        account = context.account if context else None
        vesting = context.vesting if context else None
        if not account:
            raise BuildError("Connect your wallet so I know which account is claiming.")
        if vesting is None:
            raise BuildError("Vesting record missing: your app must send your vesting data and Merkle proof.")
        if not same_address(account, vesting.data.beneficiary):
            raise BuildError(BENEFICIARY_MISMATCH)

        vesting_contract = self._require_address("vesting_address", "Vesting contract")
        record = vesting.data
        head = [
            encode_address(record.beneficiary),
            encode_uint(int(record.total_amount)),
            encode_uint(int(record.tge_amount)),
            encode_uint(int(record.cliff_duration)),
            encode_uint(int(record.vesting_duration)),
            encode_uint((_VESTING_TUPLE_WORDS + 1) * 32),
        ]
        data = encode_call(CLAIM_SIGNATURE, head, encode_bytes32_array(vesting.merkle_proof))
        return [self._preview(vesting_contract, data)]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _preview(self, to: str, data: str) -> TransactionPreview:
        return TransactionPreview(chain_id=self.settings.chain_id, to=to, data=data, value="0")

    def _require_address(self, setting_name: str, label: str) -> str:
        address = getattr(self.settings, setting_name, None)
        if not address:
            raise BuildError(f"{label} address is not configured ({setting_name.upper()}).")
        return address

    @staticmethod
    def _require_amount(intent: Intent) -> str:
        if not intent.amount:
            raise BuildError("Missing amount.")
        return intent.amount

    @staticmethod
    def _to_units(amount: str, decimals: int) -> int:
        try:
            units = parse_units(amount, decimals)
        except ValueError as exc:
            raise BuildError(f"{exc}.") from exc
        if units == 0:
            raise BuildError("Amount must be greater than zero.")
        return units


def _append(warnings: List[str], message: str) -> None:
    if message not in warnings:
        warnings.append(message)


__all__ = [
    "TransactionBuilder",
    "BuildResult",
    "BuildError",
    "APPROVAL_SKIP_NOTE",
    "BENEFICIARY_MISMATCH",
]
