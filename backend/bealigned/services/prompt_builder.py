# /bealigned/services/prompt_builder.py

# Builds the phase-scoped prompts sent to the text-generation model.

from typing import Dict, List, Sequence

from bealigned.config.persona import (
    REFLECTION_SYSTEM_PROMPT,
    TURN_PROMPT_TEMPLATE,
    ADVANCE_PROMPT_TEMPLATE,
    SESSION_COMPLETE_NOTE,
    FORCED_ADVANCE_NOTE,
)
from bealigned.config.settings import settings
from bealigned.config.strings import EMPTY_CONTEXT, EMPTY_HISTORY
from bealigned.models.domain import Phase
from bealigned.models.flow import SlotValue, Turn
from bealigned.workflows.definitions import SLOTS, PHASES
from bealigned.workflows.validator import slot_is_filled


def format_slot_lines(phase: Phase) -> str:
    lines = []
    for slot_key in sorted(phase.required_slots):
        slot = SLOTS.get(slot_key)
        description = slot.description if slot else slot_key
        lines.append(f"- {slot_key}: {description}")
    return "\n".join(lines) if lines else "- (nothing specific)"


def format_context(context: Dict[str, SlotValue]) -> str:
    """Render captured slots grouped in protocol order."""
    lines = []
    for phase_id in sorted(PHASES):
        for slot_key in sorted(PHASES[phase_id].required_slots):
            value = context.get(slot_key)
            if not slot_is_filled(value):
                continue
            if isinstance(value, list):
                value = ", ".join(value)
            label = SLOTS[slot_key].label if slot_key in SLOTS else slot_key
            lines.append(f"- {label.capitalize()}: {value}")
    return "\n".join(lines) if lines else EMPTY_CONTEXT


def format_history(history: Sequence[Turn], window: int | None = None) -> str:
    window = settings.prompt_history_window if window is None else window
    recent: List[Turn] = list(history)[-window:] if window > 0 else []
    if not recent:
        return EMPTY_HISTORY
    return "\n".join(
        f"{'User' if turn.role == 'user' else 'Assistant'}: {turn.text}" for turn in recent
    )


def build_turn_prompt(
    phase: Phase,
    context: Dict[str, SlotValue],
    history: Sequence[Turn],
    user_input: str,
) -> str:
    """Prompt for the base call: reply in the current phase and extract slots."""
    return TURN_PROMPT_TEMPLATE.format(
        system_prompt=REFLECTION_SYSTEM_PROMPT,
        phase_id=phase.id,
        phase_tag=phase.tag,
        phase_goal=phase.goal,
        slot_lines=format_slot_lines(phase),
        context_block=format_context(context),
        history_block=format_history(history),
        user_input=user_input,
    )


def build_advance_prompt(
    previous_phase: Phase,
    phase: Phase,
    context: Dict[str, SlotValue],
    history: Sequence[Turn],
    user_input: str,
    forced: bool = False,
    completed: bool = False,
) -> str:
    """Prompt for the re-scope call made only when the turn advanced."""
    if completed:
        completion_note = SESSION_COMPLETE_NOTE
    elif forced:
        completion_note = FORCED_ADVANCE_NOTE
    else:
        completion_note = ""

    return ADVANCE_PROMPT_TEMPLATE.format(
        system_prompt=REFLECTION_SYSTEM_PROMPT,
        previous_phase_id=previous_phase.id,
        previous_phase_name=previous_phase.name,
        completion_note=completion_note,
        phase_tag=phase.tag,
        phase_goal=phase.goal,
        slot_lines=format_slot_lines(phase),
        context_block=format_context(context),
        history_block=format_history(history),
        user_input=user_input,
    )
