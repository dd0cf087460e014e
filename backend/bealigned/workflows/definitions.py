# /bealigned/workflows/definitions.py

"""
Reflection protocol definitions.

This module defines the seven reflection phases as pure data.
Each phase specifies:
- key / name / emoji: identity and display metadata
- goal: what the assistant helps the user do in the phase
- required_slots: slot keys that must be filled before the phase is complete
- max_followups: stayed turns allowed before a forced advance

Phases run strictly in order (id -> id + 1), with no branching or skipping.
Editing PHASES changes the protocol without touching the engine.
Threshold and follow-up overrides from settings are applied at lookup time.
"""

from typing import Dict, List, Optional, Union
from bealigned.config.settings import settings
from bealigned.models.domain import Phase, SlotDefinition


SLOTS: Dict[str, SlotDefinition] = {
    slot.key: slot for slot in [
        SlotDefinition(
            key="situation_description",
            label="situation",
            description="The concrete situation in neutral language: what happened, when, how often"
        ),
        SlotDefinition(
            key="parties_involved",
            label="people involved",
            description="Who is involved or affected (co-parent, children, others)"
        ),
        SlotDefinition(
            key="feelings",
            label="feelings",
            description="The emotions the user names about the situation"
        ),
        SlotDefinition(
            key="feelings_beneath",
            label="what lies beneath",
            description="Deeper or softer feelings under the first reaction (fear, hurt, grief)"
        ),
        SlotDefinition(
            key="underlying_need",
            label="underlying need",
            description="Why this matters: the value, hope or need behind the user's position"
        ),
        SlotDefinition(
            key="coparent_perspective",
            label="co-parent's perspective",
            description="How the co-parent might see the situation, even if the user disagrees"
        ),
        SlotDefinition(
            key="coparent_concern",
            label="co-parent's concern",
            description="What the co-parent might be worried about or protecting"
        ),
        SlotDefinition(
            key="child_perspective",
            label="child's perspective",
            description="What the child may be noticing or experiencing"
        ),
        SlotDefinition(
            key="child_needs",
            label="child's needs",
            description="What the child needs from both parents right now"
        ),
        SlotDefinition(
            key="options",
            label="options",
            description="Two or three aligned options that honor everyone's needs",
            is_list=True
        ),
        SlotDefinition(
            key="chosen_option",
            label="chosen option",
            description="The option the user decides to pursue"
        ),
        SlotDefinition(
            key="next_step",
            label="next step",
            description="The small concrete step or message the user will take"
        ),
    ]
}


PHASES: Dict[int, Phase] = {
    phase.id: phase for phase in [
        Phase(
            id=1,
            key="issue",
            name="Name It",
            emoji="🌿",
            goal="Help the user name the surface challenge clearly and without blame.",
            required_slots=frozenset({"situation_description", "parties_involved"}),
        ),
        Phase(
            id=2,
            key="feelings",
            name="Beneath",
            emoji="🌊",
            goal="Explore the feelings underneath the situation, beyond the first reaction.",
            required_slots=frozenset({"feelings", "feelings_beneath"}),
        ),
        Phase(
            id=3,
            key="why",
            name="Why",
            emoji="🌞",
            goal="Uncover why this matters to the user: the need or value at stake.",
            required_slots=frozenset({"underlying_need"}),
        ),
        Phase(
            id=4,
            key="coparent",
            name="Co-Parent",
            emoji="🥿",
            goal="Step into the co-parent's shoes and imagine what they may feel or fear.",
            required_slots=frozenset({"coparent_perspective", "coparent_concern"}),
        ),
        Phase(
            id=5,
            key="child",
            name="Child",
            emoji="👶",
            goal="See the situation through the child's eyes and name what they need.",
            required_slots=frozenset({"child_perspective", "child_needs"}),
        ),
        Phase(
            id=6,
            key="options",
            name="Options",
            emoji="💡",
            goal="Generate two or three aligned options that honor every perspective gathered.",
            required_slots=frozenset({"options"}),
        ),
        Phase(
            id=7,
            key="choose",
            name="Choose",
            emoji="🧭",
            goal="Choose one option and shape a small, clear next step or message.",
            required_slots=frozenset({"chosen_option", "next_step"}),
        ),
    ]
}

FIRST_PHASE_ID: int = min(PHASES)
TERMINAL_PHASE_ID: int = max(PHASES)

# Legacy keys used by older clients
PHASE_ALIASES: Dict[str, str] = {
    "perspective": "coparent",
    "shoes": "coparent",
    "message": "choose",
}

_PHASE_IDS_BY_KEY: Dict[str, int] = {phase.key: phase.id for phase in PHASES.values()}


def get_phase(phase_id: int) -> Phase:
    """
    Return the phase for an id with configured overrides applied.

    Raises:
        KeyError: if the id is not part of the catalog
    """
    phase = PHASES[phase_id]
    updates = {}
    if phase_id in settings.phase_readiness_overrides:
        updates["min_readiness"] = settings.phase_readiness_overrides[phase_id]
    if phase_id in settings.phase_max_followups_overrides:
        updates["max_followups"] = settings.phase_max_followups_overrides[phase_id]
    elif settings.default_max_followups != phase.max_followups:
        updates["max_followups"] = settings.default_max_followups
    return phase.model_copy(update=updates) if updates else phase


def next_phase(phase_id: int) -> Optional[int]:
    """Return the id of the following phase, or None when phase_id is terminal."""
    if phase_id >= TERMINAL_PHASE_ID:
        return None
    return phase_id + 1


def list_phases() -> List[Phase]:
    return [get_phase(phase_id) for phase_id in sorted(PHASES)]


def resolve_phase_id(value: Union[int, str, None]) -> Optional[int]:
    """
    Resolve a phase reference (id, numeric string, key or legacy alias) to an id.
    Returns None if the reference does not name a catalog phase.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value in PHASES else None
    text = str(value).strip().lower()
    if text.isdigit():
        return resolve_phase_id(int(text))
    text = PHASE_ALIASES.get(text, text)
    return _PHASE_IDS_BY_KEY.get(text)


def readiness_threshold(phase: Phase) -> float:
    if phase.min_readiness is not None:
        return phase.min_readiness
    return settings.readiness_threshold
