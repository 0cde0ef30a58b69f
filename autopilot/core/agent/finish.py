"""Detection of the Planner's "task complete" signal.

Models do not reliably answer with the exact word requested, so the raw
text is normalised (trimmed, case-folded) and checked against an ordered set
of accepted phrasings.  The first rule that matches wins:

1. ``EXACT``       -- ``finished``
2. ``PUNCTUATED``  -- ``finished.``, ``finished!``, ``finished!!`` ...
3. ``DASHED``      -- ``finished - <anything>``, ``finished: <anything>``
4. ``SHORT``       -- at most ``SHORT_RESPONSE_MAX_CHARS`` characters that
                      contain the word ``finished``; the length cap keeps
                      the word above 15% of the text

Anything else is a continuation.  A false positive ends the run early and a
false negative is bounded by the orchestrator's step budget.
"""

from __future__ import annotations

import re
from enum import Enum

FINISH_WORD = "finished"
SHORT_RESPONSE_MAX_CHARS = 50


class FinishMatch(str, Enum):
    EXACT = "exact"
    PUNCTUATED = "punctuated"
    DASHED = "dashed"
    SHORT = "short"


_PUNCTUATED_RE = re.compile(rf"^{FINISH_WORD}[.!。！]+$")
_DASHED_RE = re.compile(rf"^{FINISH_WORD}\s*[-–—:]")
_WORD_RE = re.compile(rf"\b{FINISH_WORD}\b")


def normalize(text: str) -> str:
    """Trim, case-fold and drop surrounding quotes / markdown emphasis."""
    text = text.strip().casefold()
    return text.strip("\"'`*_ \t\n")


def detect_finish(text: str | None) -> FinishMatch | None:
    """Return the rule that recognises *text* as a finish signal, or ``None``."""
    if not text:
        return None

    norm = normalize(text)
    if not norm:
        return None

    if norm == FINISH_WORD:
        return FinishMatch.EXACT
    if _PUNCTUATED_RE.match(norm):
        return FinishMatch.PUNCTUATED
    if _DASHED_RE.match(norm):
        return FinishMatch.DASHED
    if len(norm) <= SHORT_RESPONSE_MAX_CHARS and _WORD_RE.search(norm):
        return FinishMatch.SHORT
    return None


def is_finished(text: str | None) -> bool:
    return detect_finish(text) is not None
