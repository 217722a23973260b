"""Small-talk lexicon used to answer greetings and help requests locally."""

from __future__ import annotations

import re

EXACT_PHRASES = frozenset({
    "hi",
    "hello",
    "hey",
    "yo",
    "gm",
    "good morning",
    "good afternoon",
    "good evening",
    "help",
    "help me",
    "menu",
    "start",
    "what can you do",
    "what can i do",
    "what can you help with",
    "how does this work",
    "who are you",
    "ok",
    "okay",
})

GREETING_WORDS = frozenset({"hi", "hello", "hey", "hiya", "howdy", "gm", "yo", "ciao", "hola"})

# Words allowed after a greeting without turning it into a request
GREETING_FILLERS = frozenset({
    "there", "team", "all", "everyone", "again", "friend", "assistant", "uassistant", "urano", "bot",
})

THANKS_RE = re.compile(r"^(thanks|thank you|thank u|thx|ty|cheers|much appreciated)( (a lot|so much|very much|again|mate))?$")

_PUNCT_RE = re.compile(r"[^\w\s']")
_SPACE_RE = re.compile(r"\s+")


def normalize_utterance(text: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""

    stripped = _PUNCT_RE.sub(" ", text.lower())
    return _SPACE_RE.sub(" ", stripped).strip()


def is_small_talk(text: str) -> bool:
    """Return ``True`` for greetings, thanks and generic help requests."""

    norm = normalize_utterance(text)
    if not norm:
        return True
    if norm in EXACT_PHRASES:
        return True
    if THANKS_RE.fullmatch(norm):
        return True

    words = norm.split(" ")
    if words[0] in GREETING_WORDS and all(word in GREETING_FILLERS for word in words[1:]):
        return True
    return False
