# /bealigned/workflows/summary.py

"""
Summary synthesis.

Deterministic, template-driven synopsis of what a phase captured, used only
for downstream display. It renders values present in the context and never
adds content of its own; missing required slots are called out explicitly.
"""

from typing import Any, Dict, List

from bealigned.models.domain import Phase
from bealigned.workflows.definitions import SLOTS
from bealigned.workflows.validator import missing_slots, slot_is_filled

# Leading verb for each phase's synopsis
SUMMARY_LABELS: Dict[int, str] = {
    1: "Identified",
    2: "Feelings named",
    3: "What matters",
    4: "Co-parent's view",
    5: "Child's view",
    6: "Options considered",
    7: "Chosen path",
}

# Slot rendering order within each phase's synopsis
SUMMARY_SLOT_ORDER: Dict[int, List[str]] = {
    1: ["situation_description", "parties_involved"],
    2: ["feelings", "feelings_beneath"],
    3: ["underlying_need"],
    4: ["coparent_perspective", "coparent_concern"],
    5: ["child_perspective", "child_needs"],
    6: ["options"],
    7: ["chosen_option", "next_step"],
}


def _render_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return "; ".join(str(item).strip() for item in value if slot_is_filled(item))
    return str(value).strip().rstrip(".")


def _ordered_slots(phase: Phase) -> List[str]:
    ordered = [slot for slot in SUMMARY_SLOT_ORDER.get(phase.id, []) if slot in phase.required_slots]
    return ordered + sorted(phase.required_slots - set(ordered))


def summarize(phase: Phase, context: Dict[str, Any], forced: bool = False) -> str:
    """
    Render a short synopsis of what was captured for phase.

    Args:
        phase: The phase being summarized (the one just completed on an advance)
        context: Accumulated slot values
        forced: Whether the phase was left through a forced advance

    Returns:
        e.g. "Identified: Wednesday pickup missed a third time; work and the children"
    """
    context = context or {}
    label = SUMMARY_LABELS.get(phase.id, phase.name)
    values = [
        _render_value(context[slot])
        for slot in _ordered_slots(phase)
        if slot_is_filled(context.get(slot))
    ]
    missing = [SLOTS[slot].label if slot in SLOTS else slot for slot in missing_slots(phase, context)]

    if values:
        summary = f"{label}: {'; '.join(values)}"
    else:
        summary = f"{label}: nothing captured yet"

    if missing:
        prefix = "Moved on before fully capturing" if forced else "Still open"
        summary = f"{summary}. {prefix}: {', '.join(missing)}"
    return summary
