"""
uShare offering registry.

Maps human input (name, symbol, pasted identifier or token address) to a
configured uShare offering. The registry is built once from static
configuration (``USHARE_OFFERINGS_JSON`` or the legacy single-offering
settings) and is read-only afterwards, so a single instance can be shared by
every request.

Expected configuration, e.g.::

    [
      {"name": "Milano Condo", "symbol": "MILANO", "id": "0x...", "tokenContract": "0x...", "decimals": 18},
      {"name": "Default uShare", "symbol": "USHARE", "uShareId": "8848...", "uShareToken": "0x..."}
    ]
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .identifiers import (
    ADDRESS_IN_TEXT,
    BYTES32_IN_TEXT,
    LARGE_DECIMAL_IN_TEXT,
    coerce_identifier,
    decimal_to_bytes32,
    is_valid_evm_address,
)

logger = logging.getLogger(__name__)

MAX_OFFERINGS = 100


class ConfigError(Exception):
    """Raised when the offerings configuration is present but invalid."""


class Offering(BaseModel):
    """A tradable uShare as described by configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1, max_length=80)
    symbol: str = Field(min_length=1, max_length=20)
    id: str = Field(validation_alias=AliasChoices("id", "uShareId"))
    token_contract: str = Field(
        validation_alias=AliasChoices("tokenContract", "token_contract", "uShareToken"),
        serialization_alias="tokenContract",
    )
    decimals: Optional[int] = Field(default=None, ge=1, le=255)

    @field_validator("name", "symbol", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("id must be bytes32 hex or a decimal string")
        return coerce_identifier(value)

    @field_validator("token_contract")
    @classmethod
    def _validate_token(cls, value: str) -> str:
        if not is_valid_evm_address(value):
            raise ValueError("Invalid EVM address")
        return value

    @property
    def label(self) -> str:
        return f"{self.name} ({self.symbol})"


_OFFERINGS_ADAPTER = TypeAdapter(List[Offering])


@dataclass(frozen=True)
class Selection:
    """Outcome of resolving a free-text reference to an offering."""

    id: Optional[str]
    label: Optional[str] = None
    decimals: Optional[int] = None
    offering: Optional[Offering] = None

    @classmethod
    def from_offering(cls, offering: Offering) -> "Selection":
        return cls(
            id=offering.id,
            label=offering.label,
            decimals=offering.decimals,
            offering=offering,
        )

    @property
    def found(self) -> bool:
        return self.id is not None


NOT_FOUND = Selection(id=None)


def _normalize_text(text: str) -> str:
    return re.sub(r"\s+", " ", text.strip().lower())


class OfferingRegistry:
    """Immutable, ordered collection of offerings (configuration order)."""

    def __init__(self, offerings: Sequence[Offering] = ()) -> None:
        self._offerings = tuple(offerings)

    def __iter__(self) -> Iterator[Offering]:
        return iter(self._offerings)

    def __len__(self) -> int:
        return len(self._offerings)

    @property
    def offerings(self) -> tuple[Offering, ...]:
        return self._offerings

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "OfferingRegistry":
        """Parse a JSON offerings payload.

        Returns an empty registry when the payload is absent or blank.

        Raises:
            ConfigError: when the payload is not JSON or fails schema validation.
        """
        text = (raw or "").strip()
        if not text:
            return cls()

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid USHARE_OFFERINGS_JSON (must be valid JSON): {exc}") from exc

        if not isinstance(payload, list):
            raise ConfigError("Invalid USHARE_OFFERINGS_JSON schema: expected a JSON array")
        if len(payload) > MAX_OFFERINGS:
            raise ConfigError(f"Invalid USHARE_OFFERINGS_JSON schema: at most {MAX_OFFERINGS} offerings allowed")

        try:
            offerings = _OFFERINGS_ADAPTER.validate_python(payload)
        except ValidationError as exc:
            issues = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise ConfigError(f"Invalid USHARE_OFFERINGS_JSON schema: {issues}") from exc

        return cls(offerings)

    @classmethod
    def from_settings(cls, settings: Any) -> "OfferingRegistry":
        """Build the registry from application settings.

        ``ushare_offerings_json`` wins; otherwise a single offering is built from
        the legacy ``ushare_id``/``ushare_token`` pair when both are present.
        """
        if (settings.ushare_offerings_json or "").strip():
            return cls.from_json(settings.ushare_offerings_json)

        if settings.ushare_id and settings.ushare_token:
            try:
                legacy = Offering(
                    name=settings.ushare_name or "Default uShare",
                    symbol=settings.ushare_symbol or "USHARE",
                    id=settings.ushare_id,
                    token_contract=settings.ushare_token,
                    decimals=settings.ushare_decimals,
                )
            except ValidationError as exc:
                raise ConfigError(f"Invalid legacy uShare settings: {exc}") from exc
            return cls([legacy])

        return cls()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_by_id(self, identifier: Optional[str]) -> Optional[Offering]:
        """Return the offering whose bytes32 id matches (case-insensitive)."""
        if not identifier:
            return None
        target = identifier.lower()
        for offering in self._offerings:
            if offering.id.lower() == target:
                return offering
        return None

    def find_by_token(self, address: str) -> Optional[Offering]:
        target = address.lower()
        for offering in self._offerings:
            if offering.token_contract.lower() == target:
                return offering
        return None

    def resolve_from_text(self, text: Optional[str]) -> Selection:
        """Resolve which uShare the user means based on the message.

        Priority (first match wins):
         1) bytes32 pasted in the text (full offering data when known)
         2) large decimal identifier pasted in the text
         3) single configured offering, unconditionally
         4) symbol or name substring match
         5) token contract address pasted in the text
         6) best name-token overlap score
        """
        raw = text or ""

        pasted = BYTES32_IN_TEXT.search(raw)
        if pasted:
            return self._selection_for_id(pasted.group(0))

        decimal_literal = LARGE_DECIMAL_IN_TEXT.search(raw)
        if decimal_literal:
            try:
                return self._selection_for_id(decimal_to_bytes32(decimal_literal.group(0)))
            except ValueError:
                logger.debug("Ignoring decimal literal that does not fit in bytes32")

        if len(self._offerings) == 1:
            return Selection.from_offering(self._offerings[0])

        norm = _normalize_text(raw)
        if not norm:
            return NOT_FOUND

        for offering in self._offerings:
            symbol = _normalize_text(offering.symbol)
            name = _normalize_text(offering.name)
            if (symbol and symbol in norm) or (name and name in norm):
                return Selection.from_offering(offering)

        address = ADDRESS_IN_TEXT.search(raw)
        if address:
            found = self.find_by_token(address.group(0))
            if found:
                return Selection.from_offering(found)

        best = self._best_name_match(norm)
        if best:
            return Selection.from_offering(best)

        return NOT_FOUND

    def describe(self) -> str:
        """Compact ``name (symbol): id`` listing used in prompts and clarifications."""
        return "\n".join(f"- {o.label}: {o.id}" for o in self._offerings)

    def _selection_for_id(self, identifier: str) -> Selection:
        found = self.find_by_id(identifier)
        if found:
            return Selection.from_offering(found)
        return Selection(id=identifier)

    def _best_name_match(self, norm: str) -> Optional[Offering]:
        message_tokens = set(norm.split(" "))
        best: Optional[Offering] = None
        best_score = 0

        for offering in self._offerings:
            name = _normalize_text(offering.name)
            score = sum(1 for tok in set(name.split(" ")) if len(tok) >= 3 and tok in message_tokens)
            if name and name in norm:
                score += 3
            if score > best_score:
                best, best_score = offering, score

        return best


class LazyOfferingRegistry:
    """Loads the registry on first access, exactly once, even under concurrency.

    A failed load is not cached: the ``ConfigError`` propagates to the caller
    and the next access retries.
    """

    def __init__(self, settings: Any) -> None:
        self._settings = settings
        self._registry: Optional[OfferingRegistry] = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._registry is not None

    async def get(self) -> OfferingRegistry:
        if self._registry is not None:
            return self._registry
        async with self._lock:
            if self._registry is None:
                registry = OfferingRegistry.from_settings(self._settings)
                logger.info("uShare registry loaded with %d offering(s)", len(registry))
                self._registry = registry
        return self._registry


__all__ = [
    "ConfigError",
    "Offering",
    "Selection",
    "NOT_FOUND",
    "OfferingRegistry",
    "LazyOfferingRegistry",
    "MAX_OFFERINGS",
]
