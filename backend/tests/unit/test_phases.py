# backend/tests/unit/test_phases.py
import pytest

from bealigned.config.settings import settings
from bealigned.models.flow import FlowState, Turn
from bealigned.workflows.definitions import (
    PHASES, get_phase, next_phase, list_phases, resolve_phase_id, readiness_threshold,
    FIRST_PHASE_ID, TERMINAL_PHASE_ID
)
from bealigned.workflows.errors import FlowStateValidationError
from bealigned.workflows.validator import validate_phase, validate_required_slots, load_flow_state


def test_catalog_has_seven_ordered_phases():
    names = [phase.name for phase in list_phases()]
    assert names == ["Name It", "Beneath", "Why", "Co-Parent", "Child", "Options", "Choose"]
    assert FIRST_PHASE_ID == 1
    assert TERMINAL_PHASE_ID == 7


def test_phase_tag_and_label():
    phase = get_phase(2)
    assert phase.tag == "[Phase 2: Beneath]"
    assert phase.label == "Phase 2 · Beneath"


def test_required_slots_for_known_phases():
    assert get_phase(1).required_slots == {"situation_description", "parties_involved"}
    assert get_phase(3).required_slots == {"underlying_need"}


def test_next_phase_is_linear_and_terminal_at_seven():
    assert [next_phase(i) for i in range(1, 7)] == [2, 3, 4, 5, 6, 7]
    assert next_phase(7) is None


@pytest.mark.parametrize("ref, expected", [
    (1, 1), ("3", 3), ("issue", 1), ("Feelings", 2), ("shoes", 4),
    ("perspective", 4), ("message", 7), (" choose ", 7),
    (0, None), (8, None), ("bogus", None), (True, None), (None, None),
])
def test_resolve_phase_id(ref, expected):
    assert resolve_phase_id(ref) == expected


def test_overrides_apply_without_touching_catalog(monkeypatch):
    monkeypatch.setattr(settings, "phase_max_followups_overrides", {2: 5})
    monkeypatch.setattr(settings, "phase_readiness_overrides", {3: 0.5})

    assert get_phase(2).max_followups == 5
    assert get_phase(1).max_followups == 3
    assert PHASES[2].max_followups == 3
    assert readiness_threshold(get_phase(3)) == 0.5
    assert readiness_threshold(get_phase(1)) == settings.readiness_threshold


def test_validate_phase_error_codes():
    assert validate_phase(4)["is_valid"] is True
    assert validate_phase("")["error_code"] == "EMPTY_PHASE"
    assert validate_phase(9)["error_code"] == "UNKNOWN_PHASE"


def test_validate_required_slots_lists_missing():
    result = validate_required_slots(get_phase(1), {"situation_description": "missed pickup"})
    assert result["is_valid"] is False
    assert result["error_code"] == "MISSING_REQUIRED_SLOTS"
    assert "parties_involved" in result["message"]


# --- load_flow_state ---

def test_load_flow_state_starts_new_session():
    state = load_flow_state(None)
    assert state.current_phase == 1
    assert state.readiness == 0.0
    assert state.turns_in_phase == 0
    assert state.context == {}
    assert state.conversation_history == []


def test_load_flow_state_new_session_at_requested_phase():
    assert load_flow_state(None, "feelings").current_phase == 2


def test_load_flow_state_accepts_camel_case_payload():
    payload = {
        "readiness": 0.4,
        "context": {"situation_description": "missed pickup", "options": ["swap days"]},
        "currentPhase": 3,
        "turnsInPhase": 2,
        "conversationHistory": [{"role": "user", "text": "hi", "phaseAtTime": 3}],
    }
    state = load_flow_state(payload, 3)
    assert state.current_phase == 3
    assert state.turns_in_phase == 2
    assert state.conversation_history == [Turn(role="user", text="hi", phase_at_time=3)]


def test_flow_state_survives_serialization():
    state = FlowState(current_phase=5, readiness=0.3, context={"feelings": "hurt"})
    assert load_flow_state(state.model_dump(by_alias=True)) == state


@pytest.mark.parametrize("payload", [
    {"currentPhase": 9},
    {"currentPhase": 0},
    {"readiness": 1.5},
    {"turnsInPhase": -1},
    {"context": "not a map"},
    {"conversationHistory": [{"role": "system", "text": "x", "phaseAtTime": 1}]},
    "corrupt",
    [],
])
def test_load_flow_state_rejects_malformed_state(payload):
    with pytest.raises(FlowStateValidationError):
        load_flow_state(payload)


def test_load_flow_state_rejects_phase_mismatch():
    with pytest.raises(FlowStateValidationError) as exc_info:
        load_flow_state({"currentPhase": 2}, 3)
    assert "does not match" in str(exc_info.value)


def test_load_flow_state_rejects_unknown_requested_phase():
    with pytest.raises(FlowStateValidationError):
        load_flow_state(None, "eighth")
