"""Prompt and canned copy for the intent planner."""

from __future__ import annotations

from typing import Optional

from ...services.offerings import OfferingRegistry

HELP_MESSAGE = (
    "Hi! I can prepare transactions for you to review and sign in your wallet:\n"
    "- Stake or unstake URANO (e.g. \"stake 100 URANO\", \"unstake all\")\n"
    "- Buy uShares (e.g. \"buy 10 MILANO\")\n"
    "- Vote on governance proposals (e.g. \"vote yes on proposal 3\")\n"
    "- Claim your vested tokens (\"claim my vesting\")\n"
    "I never hold keys or send transactions myself."
)

SELL_UNSUPPORTED_MESSAGE = (
    "Selling uShares isn't supported by the market contract yet. "
    "You can stake, unstake, buy uShares, vote, or claim vesting."
)

MISSING_AMOUNT_EXAMPLES = {
    "STAKE": "stake 100 URANO",
    "UNSTAKE": "unstake 50 URANO",
    "BUY_ASSET": "buy 10 MILANO",
}

MAX_LISTED_OFFERINGS = 10

PLANNER_INSTRUCTIONS = """You are the intent planner of Urano UAssistant, a dApp assistant.
Read the conversation and decide which single on-chain action the user wants in their LATEST message.
Reply with ONE JSON object and nothing else, using exactly this schema:
{
  "actionType": one of "STAKE", "UNSTAKE", "STAKE_ALL", "UNSTAKE_ALL", "BUY_ASSET", "SELL_ASSET", "VOTE", "CLAIM_VESTING", "QUESTION", "UNSUPPORTED",
  "interpretation": short description of what you understood,
  "userMessage": short message to show the user,
  "amount": decimal string in human units (e.g. "100" or "2.5"), only when the user gave one,
  "assetId": bytes32 hex identifier of a uShare from the list below,
  "proposalId": non-negative integer,
  "vote": true for yes/for, false for no/against,
  "warnings": list of short strings
}
Rules:
- STAKE, UNSTAKE: require "amount". STAKE_ALL, UNSTAKE_ALL: no fields.
- BUY_ASSET: require "amount" (number of uShares) and "assetId" when you can identify the uShare.
- SELL_ASSET: "assetId" when identifiable, "amount" when given.
- VOTE: require "proposalId" and "vote".
- CLAIM_VESTING: no fields; the wallet supplies the vesting record.
- QUESTION: general questions, greetings or anything that needs no transaction; answer briefly in "userMessage".
- UNSUPPORTED: requests for on-chain actions not listed above.
- Never invent amounts, identifiers or proposal ids. Omit fields you do not know.
"""


def build_planner_prompt(registry: OfferingRegistry, preamble: Optional[str] = None) -> str:
    """Compose the fixed planner instructions plus the current offering listing."""

    sections = []
    if preamble:
        sections.append(preamble.strip())
    sections.append(PLANNER_INSTRUCTIONS.strip())
    if len(registry):
        sections.append("Known uShares (name (symbol): assetId):\n" + registry.describe())
    else:
        sections.append("Known uShares: none configured.")
    return "\n\n".join(sections)


def clarify_offering_message(registry: OfferingRegistry) -> str:
    if not len(registry):
        return "Which uShare would you like to buy? Please paste its uShare ID (bytes32)."
    listed = registry.offerings[:MAX_LISTED_OFFERINGS]
    options = ", ".join(o.label for o in listed)
    return f"Which uShare would you like to buy? Available: {options}."
