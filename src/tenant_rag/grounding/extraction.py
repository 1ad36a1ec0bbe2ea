"""Heuristic answer extraction from retrieved context.

Each sentence of the context is scored against the query by literal
keyword overlap, synonym-group overlap and intent-specific boosts and
penalties.  The best segment(s) become a short answer.  This is a
best-effort relevance heuristic: the weights below are tunable
constants, not derived values.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict


class ScoringWeights(BaseModel):
    """Per-signal score deltas applied while ranking context segments."""

    model_config = ConfigDict(frozen=True)

    keyword_match: int = 3
    synonym_group: int = 5
    overview_boost: int = 15
    procedural_penalty: int = 15
    support_boost: int = 10
    pricing_boost: int = 10
    feature_boost: int = 10


DEFAULT_WEIGHTS = ScoringWeights()

STOP_WORDS = frozenset(
    {
        "the", "and", "or", "but", "for", "with", "this", "that", "what",
        "how", "is", "are", "was", "were", "your", "our",
    }
)

SYNONYM_GROUPS: tuple[tuple[str, ...], ...] = (
    ("product", "solution", "platform", "service", "tool", "system", "offers"),
    ("price", "cost", "billing", "payment", "plan", "subscription"),
    ("feature", "capability", "function", "functionality", "includes"),
    ("contact", "support", "email", "phone", "reach"),
    ("help", "assistance", "guide", "how to"),
)

# Query cues that switch on a scoring adjustment.
_OVERVIEW_QUERY = ("product", "service", "company", "solution", "what is", "tell me about", "about your")
_SUPPORT_QUERY = ("support", "help", "contact")
_PRICING_QUERY = ("price", "cost", "plan")
_FEATURE_QUERY = ("feature", "capability")

# Segment cues those adjustments look for.
_OVERVIEW_LINE = ("comprehensive", "offers", "platform includes", "our company offers", "ai-powered", "solution")
_PROCEDURAL_LINE = (
    "step", "follow these", "common issues", "for technical support",
    "contact support", "check our documentation",
)
_SUPPORT_LINE = ("support team", "contact", "email", "available")
_FEATURE_LINE = ("feature", "key", "-")

_NUMBERED_RE = re.compile(r"^\d+\.")
_NUMBER_ONLY_RE = re.compile(r"^\d+[.)]$")
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_NON_WORD_RE = re.compile(r"[^\w\s]")

_MARKER_PATTERNS = (
    re.compile(r"^(Source|Document|File|From):\s*", re.IGNORECASE | re.MULTILINE),
    re.compile(r"\[.*?\]"),
    re.compile(r"\(Source:.*?\)", re.IGNORECASE),
    re.compile(r"\{.*?\}"),
    re.compile(r"Document ID:.*?(?=\.|$)", re.IGNORECASE),
    re.compile(r"File:.*?(?=\.|$)", re.IGNORECASE),
)


class AnswerIntent(str, Enum):
    """How the answer should be assembled from the ranked segments."""

    OVERVIEW = "overview"
    HOW_TO = "how_to"
    PRICING = "pricing"
    FEATURE = "feature"
    CONTACT = "contact"
    GENERAL = "general"


_INTENT_CUES: tuple[tuple[AnswerIntent, tuple[str, ...]], ...] = (
    (AnswerIntent.OVERVIEW, ("what is", "what does", "explain", "product", "service", "company", "solution")),
    (AnswerIntent.HOW_TO, ("how to", "how do", "steps", "use", "usage")),
    (AnswerIntent.PRICING, ("price", "cost", "fee", "plan", "billing")),
    (AnswerIntent.FEATURE, ("feature", "capability", "function", "key features")),
    (AnswerIntent.CONTACT, ("contact", "support", "help", "email")),
)


def classify_intent(query: str) -> AnswerIntent:
    text = query.lower()
    for intent, cues in _INTENT_CUES:
        if any(cue in text for cue in cues):
            return intent
    return AnswerIntent.GENERAL


def query_keywords(query: str) -> list[str]:
    """Significant words of *query*: punctuation stripped, longer than two characters, no stop-words."""
    words = _NON_WORD_RE.sub(" ", query.lower()).split()
    return [w for w in words if len(w) > 2 and w not in STOP_WORDS]


def split_segments(context: str) -> list[str]:
    """Split *context* into non-empty sentence segments, line by line.

    A bare list marker such as ``"1."`` stays attached to the sentence
    that follows it.
    """
    segments: list[str] = []
    for line in context.splitlines():
        line = line.strip()
        if not line:
            continue
        pending = ""
        for piece in _SENTENCE_BOUNDARY_RE.split(line):
            piece = piece.strip()
            if not piece:
                continue
            if _NUMBER_ONLY_RE.match(piece):
                pending = f"{pending} {piece}".strip()
                continue
            segments.append(f"{pending} {piece}".strip())
            pending = ""
        if pending:
            segments.append(pending)
    return segments


def score_segment(
    segment: str,
    query: str,
    keywords: list[str] | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """Relevance score of one context *segment* for *query*."""
    seg = segment.lower()
    q = query.lower()
    if keywords is None:
        keywords = query_keywords(query)

    score = sum(weights.keyword_match for word in keywords if word in seg)

    for group in SYNONYM_GROUPS:
        if any(w in q for w in group) and any(w in seg for w in group):
            score += weights.synonym_group

    if _has_any(q, _OVERVIEW_QUERY):
        if _has_any(seg, _OVERVIEW_LINE):
            score += weights.overview_boost
        if _has_any(seg, _PROCEDURAL_LINE) or _NUMBERED_RE.match(seg):
            score -= weights.procedural_penalty

    if _has_any(q, _SUPPORT_QUERY) and _has_any(seg, _SUPPORT_LINE):
        score += weights.support_boost

    if _has_any(q, _PRICING_QUERY) and ("$" in seg or "pricing" in seg):
        score += weights.pricing_boost

    if _has_any(q, _FEATURE_QUERY) and _has_any(seg, _FEATURE_LINE):
        score += weights.feature_boost

    return score


def rank_segments(query: str, context: str, weights: ScoringWeights = DEFAULT_WEIGHTS) -> list[str]:
    """Positively scored segments of *context*, best first (ties keep context order)."""
    keywords = query_keywords(query)
    scored = [(seg, score_segment(seg, query, keywords, weights)) for seg in split_segments(context)]
    relevant = [item for item in scored if item[1] > 0]
    relevant.sort(key=lambda item: item[1], reverse=True)
    return [seg for seg, _ in relevant]


def extract_answer(query: str, context: str, weights: ScoringWeights = DEFAULT_WEIGHTS) -> str | None:
    """Build a short answer to *query* from *context*, or ``None`` if nothing is relevant."""
    if not query or not context or not context.strip():
        return None
    relevant = rank_segments(query, context, weights)
    if not relevant:
        return None

    intent = classify_intent(query)
    if intent is AnswerIntent.OVERVIEW:
        main = next(
            (s for s in relevant if _has_any(s.lower(), ("comprehensive", "platform", "solution", "offers", "includes"))),
            relevant[0],
        )
        answer = first_sentence(main)
    elif intent is AnswerIntent.HOW_TO:
        steps = [
            s for s in relevant
            if re.search(r"\d+\.", s) or _has_any(s.lower(), ("step", "first", "follow"))
        ]
        answer = " ".join(steps[:4] if steps else relevant[:2])
    elif intent is AnswerIntent.PRICING:
        pricing = [s for s in relevant if _has_any(s.lower(), ("$", "pricing", "month", "plan", "cost"))]
        answer = " ".join(pricing[:2]) if pricing else relevant[0]
    elif intent is AnswerIntent.FEATURE:
        features = [s for s in relevant if _has_any(s.lower(), ("feature", "-", "includes", "key"))]
        answer = " ".join(features[:5] if features else relevant[:2])
    elif intent is AnswerIntent.CONTACT:
        contacts = [s for s in relevant if _has_any(s.lower(), ("@", "email", "contact", "support", "available"))]
        answer = " ".join(contacts[:2]) if contacts else relevant[0]
    else:
        answer = first_sentence(relevant[0])

    answer = strip_markers(answer)
    return answer or None


def first_sentence(text: str) -> str:
    """Return the first sentence of *text* longer than ten characters, markers stripped."""
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if len(s.strip()) > 10]
    if not sentences:
        return text.strip()
    sentence = strip_markers(sentences[0])
    if not sentence:
        return ""
    return sentence if sentence.endswith(".") else f"{sentence}."


def strip_markers(text: str) -> str:
    """Remove embedded source / document metadata markers from *text*."""
    for pattern in _MARKER_PATTERNS:
        text = pattern.sub("", text)
    return re.sub(r"\s{2,}", " ", text).strip()


def _has_any(text: str, needles: tuple[str, ...]) -> bool:
    return any(n in text for n in needles)
