# /bealigned/workflows/scoring.py

"""
Readiness scoring.

Readiness estimates how completely the current phase's informational needs
are met. It combines three signals with weights that sum to 1.0:

- slot coverage: fraction of the phase's required slots filled in context
- input substance: how much new, concrete information the latest message
  carried (length, concrete details, cause/effect phrasing), in [0, 1]
- explicit confirmation: 1.0 when the user affirms they have said enough

Within a phase readiness never decreases: the score for a turn is
max(prior readiness, weighted sum), clamped to [0, 1].

All functions are pure. Weights default to the configured values.
"""

import re
from typing import Any, Dict, List, Optional
from rapidfuzz import fuzz

from bealigned.config.settings import settings
from bealigned.models.domain import Phase, ReadinessSignals
from bealigned.workflows.validator import missing_slots

# Share of the substance signal contributed by each component
LENGTH_SHARE = 0.4
DETAIL_SHARE = 0.35
CAUSAL_SHARE = 0.25

# Detail categories needed for a full detail score
DETAIL_CATEGORIES_FOR_FULL_SCORE = 3

# Messages shorter than this carry no substance ("ok", "yes")
MIN_SUBSTANTIVE_WORDS = 3

WORD_RE = re.compile(r"[A-Za-z0-9']+")

PEOPLE_RE = re.compile(
    r"\b(ex|co-?parent|partner|husband|wife|mom|mum|mother|dad|father|son|daughter|sons|daughters|"
    r"kid|kids|child|children|baby|toddler|teen|teenager|stepmom|stepdad|grandma|grandpa|"
    r"grandmother|grandfather|teacher|coach|lawyer|mediator|therapist|boyfriend|girlfriend)\b",
    re.IGNORECASE,
)

TEMPORAL_RE = re.compile(
    r"\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday|mondays|tuesdays|wednesdays|"
    r"thursdays|fridays|saturdays|sundays|weekend|weekends|weekday|today|tonight|yesterday|tomorrow|"
    r"morning|afternoon|evening|night|week|weeks|month|months|year|years|holiday|holidays|birthday|"
    r"christmas|thanksgiving|summer|winter|spring|fall|january|february|march|april|may|june|july|"
    r"august|september|october|november|december|pickup|drop-?off|bedtime)\b"
    r"|\b\d{1,2}(:\d{2})?\s?(am|pm)\b|\b\d{1,2}/\d{1,2}(/\d{2,4})?\b",
    re.IGNORECASE,
)

QUANTITY_RE = re.compile(
    r"\b\d+\b|\b(once|twice|two|three|four|five|six|seven|eight|nine|ten|dozen|half|"
    r"first|second|third|fourth|fifth|times|hours|minutes|days|dollars)\b",
    re.IGNORECASE,
)

EMOTION_RE = re.compile(
    r"\b(feel|feeling|feelings|felt|angry|mad|furious|frustrated|sad|hurt|worried|anxious|scared|"
    r"afraid|hopeless|helpless|overwhelmed|disappointed|embarrassed|ashamed|guilty|confused|"
    r"uncertain|lost|stuck|resentful|bitter|betrayed|rejected|lonely|isolated|abandoned|"
    r"disrespected|exhausted|tired|stressed|upset|jealous|relieved|grateful|hopeful)\b",
    re.IGNORECASE,
)

CAUSAL_RE = re.compile(
    r"\b(because|since|so that|which means|that means|means that|that's why|thats why|"
    r"as a result|led to|leads to|leading to|caused|causes|causing|affecting|affects|affected|"
    r"impact|impacts|impacted|therefore|so (i|we|they|he|she|now)|ended up|which made|makes me|made me)\b",
    re.IGNORECASE,
)

# Capitalized words that are not proper names
_NON_NAME_WORDS = {
    "I", "I'm", "I've", "I'd", "I'll", "The", "A", "An", "And", "But", "So", "My", "We", "He",
    "She", "They", "It", "This", "That", "When", "Then", "Yes", "No", "Ok", "Okay",
}

CONFIRMATION_PHRASES = (
    "thats everything",
    "thats the whole situation",
    "thats the whole story",
    "thats all",
    "that is all",
    "that is everything",
    "thats it",
    "nothing else",
    "nothing more to add",
    "im done",
    "that covers it",
    "that sums it up",
    "thats right",
    "yes exactly",
    "ready to move on",
    "lets move on",
    "no more",
)

NEGATION_MARKERS = (
    "not everything",
    "not all",
    "not it",
    "not done",
    "not the whole",
    "not ready",
    "isnt everything",
    "isnt all",
    "theres more",
    "more to it",
    "dont want to move on",
)

# Splits a message into clauses; a confirmation must fill a whole clause
CLAUSE_SPLIT_RE = re.compile(r"[.,!;?:\n]+")

LEADING_FILLERS = {"yes", "yeah", "yep", "ok", "okay", "so", "and", "well", "honestly", "i", "think", "guess"}
TRAILING_FILLERS = {"honestly", "really", "now", "thanks", "thank", "you", "for"}


def _normalize(text: str) -> str:
    text = (text or "").lower().replace("’", "'").replace("'", "")
    return " ".join(re.sub(r"[^a-z0-9\s]", " ", text).split())


def _strip_fillers(clause: str) -> str:
    words = clause.split()
    while words and words[0] in LEADING_FILLERS:
        words = words[1:]
    while words and words[-1] in TRAILING_FILLERS:
        words = words[:-1]
    return " ".join(words)


def _clauses(text: str) -> List[str]:
    """Normalized clauses of a message, each with and without filler words."""
    clauses = []
    for raw in CLAUSE_SPLIT_RE.split(text or ""):
        clause = _normalize(raw)
        if not clause:
            continue
        clauses.append(clause)
        stripped = _strip_fillers(clause)
        if stripped and stripped != clause:
            clauses.append(stripped)
    return clauses


def detect_confirmation(text: str, threshold: Optional[int] = None) -> bool:
    """
    True if the user affirms that what they've shared is sufficient.

    A phrase only counts when it makes up a whole clause, bounded by the
    ends of the message or by clause punctuation, so "I'm done being the
    only one who shows up" is not a confirmation. Clauses are compared
    with a full fuzzy ratio to tolerate small typos; an explicit negation
    ("that's not everything", "there's more") cancels a match.
    """
    normalized = _normalize(text)
    if not normalized:
        return False
    padded = f" {normalized} "
    if any(f" {marker} " in padded for marker in NEGATION_MARKERS):
        return False

    threshold = settings.confirmation_match_threshold if threshold is None else threshold
    for clause in _clauses(text):
        for phrase in CONFIRMATION_PHRASES:
            if clause == phrase or fuzz.ratio(phrase, clause) >= threshold:
                return True
    return False


def _has_proper_name(text: str) -> bool:
    # Skip the first word of each sentence, which is capitalized anyway.
    for sentence in re.split(r"[.!?]+\s*", text):
        words = WORD_RE.findall(sentence)
        for word in words[1:]:
            if word[0].isupper() and word not in _NON_NAME_WORDS:
                return True
    return False


def detail_categories(text: str) -> int:
    """Count how many kinds of concrete detail the text contains."""
    hits = 0
    if PEOPLE_RE.search(text) or _has_proper_name(text):
        hits += 1
    if TEMPORAL_RE.search(text):
        hits += 1
    if QUANTITY_RE.search(text):
        hits += 1
    if EMOTION_RE.search(text):
        hits += 1
    return hits


def input_substance(text: str, word_target: Optional[int] = None) -> float:
    """
    Bounded measure in [0, 1] of how much concrete information a message adds.
    """
    text = (text or "").strip()
    words = WORD_RE.findall(text)
    if len(words) < MIN_SUBSTANTIVE_WORDS:
        return 0.0

    word_target = word_target or settings.substance_word_target
    length_score = min(len(words) / word_target, 1.0)
    detail_score = min(detail_categories(text) / DETAIL_CATEGORIES_FOR_FULL_SCORE, 1.0)
    causal_score = 1.0 if CAUSAL_RE.search(text) else 0.0

    substance = (
        LENGTH_SHARE * length_score
        + DETAIL_SHARE * detail_score
        + CAUSAL_SHARE * causal_score
    )
    return max(0.0, min(substance, 1.0))


def slot_coverage(phase: Phase, context: Dict[str, Any]) -> float:
    """Fraction of the phase's required slots that are filled."""
    if not phase.required_slots:
        return 1.0
    filled = len(phase.required_slots) - len(missing_slots(phase, context))
    return filled / len(phase.required_slots)


def compute_signals(phase: Phase, context: Dict[str, Any], new_input_text: str) -> ReadinessSignals:
    return {
        "slot_coverage": slot_coverage(phase, context),
        "substance": input_substance(new_input_text),
        "confirmation": 1.0 if detect_confirmation(new_input_text) else 0.0,
    }


def default_weights() -> Dict[str, float]:
    return {
        "slot_coverage": settings.readiness_weight_slots,
        "substance": settings.readiness_weight_substance,
        "confirmation": settings.readiness_weight_confirmation,
    }


def weighted_score(signals: ReadinessSignals, weights: Optional[Dict[str, float]] = None) -> float:
    weights = weights or default_weights()
    total = sum(weights[name] * signals[name] for name in ("slot_coverage", "substance", "confirmation"))
    return max(0.0, min(total, 1.0))


def score_readiness(
    phase: Phase,
    context: Dict[str, Any],
    new_input_text: str,
    prior_readiness: float,
    weights: Optional[Dict[str, float]] = None,
) -> float:
    """
    Score readiness for the current turn.

    Args:
        phase: Phase being scored
        context: Context after merging this turn's extraction
        new_input_text: The user's latest message
        prior_readiness: Readiness carried in from the previous turn of the same phase
        weights: Optional weight override (defaults to settings)

    Returns:
        max(prior_readiness, weighted sum), clamped to [0, 1]
    """
    signals = compute_signals(phase, context, new_input_text)
    score = max(prior_readiness or 0.0, weighted_score(signals, weights))
    return max(0.0, min(score, 1.0))
