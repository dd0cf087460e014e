# /bealigned/workflows/tags.py

"""
Phase tag parsing and repair.

Every assistant reply must begin with the canonical tag of the phase in
effect after the turn's decision, e.g. "[Phase 2: Beneath]". The phase id
in TurnResult is the source of truth; the tag is rendered from it.

Generated text is untrusted: any leading tag (right or wrong) or legacy
markdown phase heading is stripped and the canonical tag is prepended.
"""

import re
from typing import Optional, Tuple

from bealigned.models.domain import Phase

TAG_RE = re.compile(r"^\s*\[\s*phase\s*(\d+)\s*[:\-·]?\s*([^\]\n]*)\]\s*", re.IGNORECASE)

# e.g. "🌿 **PHASE 1:** *LET'S NAME IT*" on its own first line
LEGACY_HEADING_RE = re.compile(r"^\s*[^\w\[\n]*[*#]+\s*phase\s*\d+\b[^\n]*(\n+|$)", re.IGNORECASE)


def parse_tag(content: str) -> Optional[Tuple[int, str]]:
    """Return (phase_id, name) from a leading tag, or None if there is none."""
    match = TAG_RE.match(content or "")
    if not match:
        return None
    return int(match.group(1)), match.group(2).strip()


def has_valid_tag(content: str, phase: Phase) -> bool:
    return (content or "").startswith(phase.tag)


def strip_phase_markers(content: str) -> str:
    """Remove any leading phase tags or legacy phase headings."""
    text = (content or "").strip()
    while True:
        match = TAG_RE.match(text) or LEGACY_HEADING_RE.match(text)
        if not match:
            return text
        text = text[match.end():].lstrip()


def ensure_phase_tag(content: str, phase: Phase) -> str:
    """
    Guarantee that content begins with the canonical tag for phase.

    Valid content is returned unchanged. Missing, mismatched or legacy
    markers are replaced deterministically.
    """
    if has_valid_tag(content, phase):
        return content
    body = strip_phase_markers(content)
    if not body:
        return phase.tag
    return f"{phase.tag}\n\n{body}"
