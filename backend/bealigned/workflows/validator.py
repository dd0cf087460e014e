# /bealigned/workflows/validator.py

"""
Pure validation functions for the reflection protocol.

This module provides deterministic, side-effect-free checks of phase
references, slot values and caller-supplied flow state against the
PHASES catalog.

All functions are:
- Pure (no side effects)
- Deterministic (same input = same output)
- No AI calls
- No logging
"""

from typing import Any, Dict, List, Optional, TypedDict, Union
from pydantic import ValidationError

from bealigned.models.domain import Phase
from bealigned.models.flow import FlowState
from bealigned.workflows.definitions import PHASES, resolve_phase_id
from bealigned.workflows.errors import FlowStateValidationError


class ValidationResult(TypedDict):
    """Result of a validation check."""
    is_valid: bool
    error_code: Optional[str]
    message: Optional[str]


def validate_phase(phase_ref: Union[int, str, None]) -> ValidationResult:
    """
    Validate that a phase reference names a phase in the catalog.

    Args:
        phase_ref: Phase id, numeric string, key or legacy alias

    Returns:
        ValidationResult with is_valid=True if the phase exists, False otherwise
    """
    if phase_ref is None or (isinstance(phase_ref, str) and not phase_ref.strip()):
        return {
            "is_valid": False,
            "error_code": "EMPTY_PHASE",
            "message": "Phase cannot be empty"
        }

    if resolve_phase_id(phase_ref) is None:
        return {
            "is_valid": False,
            "error_code": "UNKNOWN_PHASE",
            "message": f"Phase '{phase_ref}' is not defined (expected 1..{len(PHASES)} or a phase key)"
        }

    return {
        "is_valid": True,
        "error_code": None,
        "message": None
    }


def slot_is_filled(value: Any) -> bool:
    """A slot counts as filled when it holds a non-empty, non-blank value."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, dict):
        return len(value) > 0
    if isinstance(value, (list, tuple, set)):
        return any(slot_is_filled(item) for item in value)
    return True


def missing_slots(phase: Phase, context: Dict[str, Any]) -> List[str]:
    """Return the phase's required slots that are not filled, in stable order."""
    context = context or {}
    return [slot for slot in sorted(phase.required_slots) if not slot_is_filled(context.get(slot))]


def validate_required_slots(phase: Phase, context: Dict[str, Any]) -> ValidationResult:
    """
    Validate that all required slots for a phase are present and non-empty.

    Args:
        phase: The phase whose requirements are checked
        context: Captured slot values

    Returns:
        ValidationResult with is_valid=True if all required slots are filled
    """
    missing = missing_slots(phase, context)
    if missing:
        return {
            "is_valid": False,
            "error_code": "MISSING_REQUIRED_SLOTS",
            "message": f"Missing or empty required slots for phase {phase.id} ({phase.name}): {', '.join(missing)}"
        }

    return {
        "is_valid": True,
        "error_code": None,
        "message": None
    }


def load_flow_state(raw: Union[FlowState, Dict[str, Any], None], current_phase: Union[int, str, None] = None) -> FlowState:
    """
    Build a FlowState from a caller payload, rejecting malformed input.

    A missing payload starts a new session at current_phase (or phase 1).
    When both a payload and current_phase are given they must agree.

    Raises:
        FlowStateValidationError: on an unknown phase, a corrupt shape, or a
            phase mismatch between the request and the state
    """
    requested_phase = None
    if current_phase is not None:
        result = validate_phase(current_phase)
        if not result["is_valid"]:
            raise FlowStateValidationError(result["message"])
        requested_phase = resolve_phase_id(current_phase)

    if raw is None:
        if requested_phase is None:
            return FlowState()
        return FlowState(current_phase=requested_phase)

    if isinstance(raw, FlowState):
        state = raw
    elif isinstance(raw, dict):
        try:
            state = FlowState.model_validate(raw)
        except ValidationError as e:
            raise FlowStateValidationError(f"Malformed flow state: {e.error_count()} error(s)", e.errors(include_url=False, include_context=False)) from e
    else:
        raise FlowStateValidationError(f"Flow state must be an object, got {type(raw).__name__}")

    if requested_phase is not None and requested_phase != state.current_phase:
        raise FlowStateValidationError(
            f"currentPhase {requested_phase} does not match flowState.currentPhase {state.current_phase}"
        )
    return state
