"""A catalog skill: keyword scoring, parameter extraction, deep links."""

from __future__ import annotations

import re
from urllib.parse import quote

from autopilot.skills.models import RelatedApp, SkillConfig
from autopilot.utils.logging import get_logger

logger = get_logger(__name__)

# Score for a query equal to a keyword.
EXACT_SCORE = 1.0
# Scores when keywords appear inside the query: the first one is worth
# CONTAINED_BASE, each further one adds CONTAINED_STEP, capped at CONTAINED_MAX.
CONTAINED_BASE = 0.7
CONTAINED_STEP = 0.1
CONTAINED_MAX = 0.95
# Weight of partial token overlap for multi-word keywords.
TOKEN_OVERLAP_WEIGHT = 0.6

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")
_TOKEN_RE = re.compile(r"\w+")
_ASCII_WORDS_RE = re.compile(r"[a-z0-9][a-z0-9 '\-]*", re.ASCII)

_FILLER_WORDS = frozenset({
    "a", "an", "the", "me", "my", "i", "to", "for", "please", "help",
    "want", "some", "can", "you", "and", "with",
})


def normalize(text: str) -> str:
    """Case-fold, collapse whitespace and trim surrounding punctuation."""
    text = " ".join(text.casefold().split())
    return text.strip(" .,!?;:。，！？")


def tokens(text: str) -> set[str]:
    return set(_TOKEN_RE.findall(text))


def _keyword_pattern(keyword: str) -> str:
    # Latin keywords must match whole words (optionally pluralised); others,
    # such as CJK text without spaces, match as substrings.
    if _ASCII_WORDS_RE.fullmatch(keyword):
        return rf"(?<!\w){re.escape(keyword)}(?:s|es)?(?!\w)"
    return re.escape(keyword)


def _contains(query: str, keyword: str) -> bool:
    return re.search(_keyword_pattern(keyword), query) is not None


class Skill:
    """Runtime wrapper around a :class:`SkillConfig`."""

    def __init__(self, config: SkillConfig):
        self.config = config
        self._keywords = [k for k in (normalize(kw) for kw in config.keywords) if k]

    @property
    def id(self) -> str:
        return self.config.id

    def __repr__(self) -> str:
        return f"Skill({self.config.id!r})"

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def matched_keywords(self, query: str) -> list[str]:
        q = normalize(query)
        return [k for k in self._keywords if _contains(q, k)]

    def match_score(self, query: str) -> float:
        """Score *query* against this skill's keywords, in [0, 1].

        A query equal to a keyword scores 1.0.  Keywords contained in the
        query score from ``CONTAINED_BASE`` upward, and otherwise partial
        token overlap with a multi-word keyword gives a lower score.
        """
        q = normalize(query)
        if not q or not self._keywords:
            return 0.0

        if q in self._keywords:
            return EXACT_SCORE

        contained = self.matched_keywords(q)
        if contained:
            score = CONTAINED_BASE + CONTAINED_STEP * (len(contained) - 1)
            return round(min(CONTAINED_MAX, score), 4)

        query_tokens = tokens(q)
        best = 0.0
        for keyword in self._keywords:
            keyword_tokens = tokens(keyword)
            if len(keyword_tokens) < 2:
                continue
            overlap = len(keyword_tokens & query_tokens) / len(keyword_tokens)
            best = max(best, overlap)
        return round(best * TOKEN_OVERLAP_WEIGHT, 4)

    # ------------------------------------------------------------------
    # Parameters and deep links
    # ------------------------------------------------------------------

    def extract_params(self, query: str) -> dict:
        """Pull deep-link parameters out of *query*.

        ``query`` is the request as typed.  ``keyword`` is what remains after
        removing the skill's own keywords and filler words, and is omitted
        when nothing remains.
        """
        params: dict = {"query": query.strip()}

        remainder = normalize(query)
        for keyword in sorted(self.matched_keywords(remainder), key=len, reverse=True):
            remainder = re.sub(_keyword_pattern(keyword), " ", remainder)
        words = [w for w in remainder.split() if w not in _FILLER_WORDS]
        keyword = " ".join(words).strip(" .,!?;:")
        if keyword:
            params["keyword"] = keyword
        return params

    def generate_deep_link(self, app: RelatedApp, params: dict) -> str:
        """Fill *app*'s deep-link template with *params*.

        Returns ``""`` when the app has no template or a placeholder has no
        value, so callers fall back to GUI automation instead of opening a
        broken URI.
        """
        template = app.deep_link
        if not template:
            return ""

        missing = []

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            value = params.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
                return match.group(0)
            return quote(str(value), safe="")

        uri = _PLACEHOLDER_RE.sub(substitute, template)
        if missing:
            logger.info(
                "deep_link_missing_params",
                skill_id=self.id,
                app=app.package_name,
                missing=missing,
            )
            return ""
        if "{" in uri or "}" in uri:
            logger.warning("deep_link_malformed_template", skill_id=self.id, template=template)
            return ""
        return uri
