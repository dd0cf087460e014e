# /bealigned/workflows/engine.py

"""
Pure phase advancement engine.

This module turns a readiness score plus turn-count and confirmation
signals into an advance/stay decision, and applies that decision to a
FlowState snapshot.

Rules, in priority order:
1. readiness >= threshold and (explicit confirmation or at least one prior
   exchange in the phase) -> advance
2. turns_in_phase >= phase.max_followups -> forced advance
3. otherwise -> stay, turns_in_phase increments

On advance the engine moves to the next phase (or marks the session
complete on the terminal phase) and resets readiness and turns_in_phase.

All functions are:
- Pure (no side effects)
- Deterministic (same input = same output)
- No AI calls
- No logging
"""

from typing import Dict, List, Optional

from bealigned.models.domain import Phase, PhaseDecision
from bealigned.models.flow import FlowState, SlotValue, Turn
from bealigned.workflows.definitions import next_phase, readiness_threshold


def decide_advancement(
    phase: Phase,
    turns_in_phase: int,
    readiness: float,
    explicit_confirmation: bool,
    threshold: Optional[float] = None,
) -> PhaseDecision:
    """
    Decide whether the conversation should leave the current phase.

    Args:
        phase: The phase in effect
        turns_in_phase: Stayed turns already spent in the phase
        readiness: Readiness computed for this turn
        explicit_confirmation: Whether the user affirmed sufficiency
        threshold: Advance threshold (defaults to the phase/setting value)

    Returns:
        PhaseDecision. completed=True means the terminal phase was finished;
        next_phase is None in that case.
    """
    threshold = readiness_threshold(phase) if threshold is None else threshold

    if readiness >= threshold and (explicit_confirmation or turns_in_phase >= 1):
        forced = False
    elif turns_in_phase >= phase.max_followups:
        forced = True
    else:
        return {
            "advance": False,
            "forced": False,
            "completed": False,
            "next_phase": None
        }

    following = next_phase(phase.id)
    return {
        "advance": True,
        "forced": forced,
        "completed": following is None,
        "next_phase": following
    }


def apply_decision(
    state: FlowState,
    decision: PhaseDecision,
    readiness: float,
    context: Dict[str, SlotValue],
    history: List[Turn],
    last_prompt: str,
    last_response: str,
) -> FlowState:
    """
    Build the next FlowState snapshot from a decision.

    The input state is not modified. Context is carried over as given; the
    caller has already merged this turn's extraction into it.
    """
    forced_phases = list(state.forced_phases)

    if not decision["advance"]:
        return FlowState(
            readiness=readiness,
            context=context,
            last_prompt=last_prompt,
            last_response=last_response,
            conversation_history=history,
            current_phase=state.current_phase,
            turns_in_phase=state.turns_in_phase + 1,
            completed=state.completed,
            forced_phases=forced_phases,
        )

    if decision["forced"] and state.current_phase not in forced_phases:
        forced_phases.append(state.current_phase)

    if decision["completed"]:
        # The terminal phase stays current; the session is marked complete.
        return FlowState(
            readiness=0.0,
            context=context,
            last_prompt=last_prompt,
            last_response=last_response,
            conversation_history=history,
            current_phase=state.current_phase,
            turns_in_phase=0,
            completed=True,
            forced_phases=forced_phases,
        )

    return FlowState(
        readiness=0.0,
        context=context,
        last_prompt=last_prompt,
        last_response=last_response,
        conversation_history=history,
        current_phase=decision["next_phase"],
        turns_in_phase=0,
        completed=False,
        forced_phases=forced_phases,
    )
