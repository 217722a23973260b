import re

from pathlib import Path
from typing import Any, List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_BYTES32_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8080, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    environment: str = Field(
        default="development",
        description="Runtime environment (development, test, production)",
        validation_alias=AliasChoices("environment", "ENVIRONMENT", "NODE_ENV"),
    )

    # CORS / Auth / Rate Limiting
    cors_origin: str = Field(default="", description="Comma separated list of allowed origins")
    uassistant_api_key: str = Field(default="", description="API key protecting /chat endpoints")
    rate_limit_max: int = Field(default=30, ge=1, description="Requests allowed per window and client")
    rate_limit_window_seconds: int = Field(default=60, ge=1, description="Rate limit window length")
    rate_limit_trust_forwarded: bool = Field(
        default=False,
        description="Key rate limits on X-Forwarded-For (only behind a trusted reverse proxy)",
    )

    # LLM Provider Settings
    llm_provider: str = Field(default="openai", description="Completion provider (openai, anthropic)")
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model identifier passed to the completion provider",
        validation_alias=AliasChoices("llm_model", "LLM_MODEL", "OPENAI_MODEL"),
    )
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI-compatible API base URL")
    anthropic_api_key: str = Field(default="", description="Anthropic API key")
    llm_max_tokens: int = Field(
        default=800,
        ge=1,
        description="Maximum tokens for the planner completion",
        validation_alias=AliasChoices("llm_max_tokens", "LLM_MAX_TOKENS", "OPENAI_MAX_OUTPUT_TOKENS"),
    )
    planner_temperature: float = Field(default=0.1, ge=0.0, le=2.0, description="Planner sampling temperature")
    llm_timeout_seconds: float = Field(default=20.0, gt=0, description="Planner completion timeout")
    system_prompt: Optional[str] = Field(
        default=None,
        description="Optional persona preamble prepended to the planner instructions",
        validation_alias=AliasChoices("system_prompt", "SYSTEM_PROMPT", "ASSISTANT_SYSTEM_PROMPT"),
    )

    # Chain / Contracts
    chain_id: int = Field(default=421614, gt=0, description="EVM chain id (Arbitrum Sepolia by default)")
    urano_staking: Optional[str] = Field(default=None, description="Staking contract address")
    urano_governance: Optional[str] = Field(default=None, description="Governance contract address")
    ushare_market: Optional[str] = Field(
        default=None,
        description="uShare market contract address",
        validation_alias=AliasChoices("ushare_market", "USHARE_MARKET", "USHARE_MARKET_MOCK"),
    )
    vesting_address: Optional[str] = Field(default=None, description="Vesting contract address")
    usdc: Optional[str] = Field(
        default=None,
        description="Quote currency (USDC) token contract",
        validation_alias=AliasChoices("usdc", "USDC", "CIRCLE_USDC", "MOCK_USDC"),
    )
    urano_decimals: int = Field(default=18, ge=1, le=255, description="Staking token decimals")
    ushare_decimals: int = Field(default=18, ge=1, le=255, description="Default uShare decimals")
    market_supports_sell: bool = Field(default=False, description="Whether the market contract exposes sell()")

    # uShare Offerings
    ushare_offerings_json: str = Field(default="", description="JSON array of uShare offerings")
    ushare_id: Optional[str] = Field(default=None, description="Legacy single-offering id (bytes32)")
    ushare_token: Optional[str] = Field(default=None, description="Legacy single-offering token contract")
    ushare_name: Optional[str] = Field(default=None, description="Legacy single-offering name")
    ushare_symbol: Optional[str] = Field(default=None, description="Legacy single-offering symbol")

    # Response Metadata
    docs_url: Optional[str] = Field(default=None, description="Documentation link surfaced in plans")
    support_email: Optional[str] = Field(default=None, description="Support contact surfaced in plans")

    # Streaming
    stream_heartbeat_seconds: float = Field(default=15.0, gt=0, description="Keep-alive comment interval")
    stream_disconnect_poll_seconds: float = Field(
        default=1.0, gt=0, description="How often an open stream checks for a departed client"
    )

    @field_validator(
        "urano_staking",
        "urano_governance",
        "ushare_market",
        "vesting_address",
        "usdc",
        "ushare_token",
        mode="before",
    )
    @classmethod
    def _validate_address(cls, value: Any) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        text = str(value).strip()
        if not _ADDRESS_RE.fullmatch(text):
            raise ValueError("Invalid EVM address")
        return text

    @field_validator("ushare_id", mode="before")
    @classmethod
    def _validate_bytes32(cls, value: Any) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        text = str(value).strip()
        if not _BYTES32_RE.fullmatch(text):
            raise ValueError("Invalid bytes32")
        return text

    @field_validator("docs_url", "support_email", "system_prompt", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_allow_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origin.split(",") if origin.strip()]

    @property
    def has_llm_key(self) -> bool:
        """Check if we have an API key for the configured LLM provider"""
        if self.llm_provider.lower() in ["anthropic", "claude"]:
            return bool(self.anthropic_api_key)
        return bool(self.openai_api_key)


# Global settings instance
settings = Settings()
