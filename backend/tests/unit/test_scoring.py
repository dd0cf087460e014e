# backend/tests/unit/test_scoring.py
import pytest

from bealigned.workflows.definitions import get_phase
from bealigned.workflows.scoring import (
    detect_confirmation, detail_categories, input_substance, slot_coverage,
    compute_signals, weighted_score, score_readiness
)

DENSE_PICKUP = (
    "My ex Mark missed the Wednesday pickup at 3:30 for the third time this month, "
    "so I had to leave work early and the kids waited at school."
)
PHASE_ONE_FULL = {
    "situation_description": "Wednesday pickup missed a third time this month",
    "parties_involved": "my ex and the kids",
}


@pytest.mark.parametrize("text", [
    "Yes, that's everything.",
    "thats the whole situation",
    "That's it, I'm done",
    "Nothing else, honestly",
    "yes thats everythng",
    "I think that's all for now, thanks",
    "No more. Let's keep going",
])
def test_detect_confirmation_true(text):
    assert detect_confirmation(text) is True


@pytest.mark.parametrize("text", [
    "",
    "My ex keeps changing plans",
    "That's not everything, there's more",
    "It's not allowed to happen again",
    "Nothing else matters to him but his schedule",
    "I'm done being the only one who shows up",
    "That is always how it goes with him",
    "That is allowed by the court order",
])
def test_detect_confirmation_false(text):
    assert detect_confirmation(text) is False


def test_short_messages_carry_no_substance():
    assert input_substance("") == 0.0
    assert input_substance("ok sure") == 0.0


def test_terse_message_has_low_substance():
    assert 0.0 < input_substance("My ex keeps changing plans") < 0.3


def test_dense_message_has_full_substance():
    assert input_substance(DENSE_PICKUP) == pytest.approx(1.0)


def test_detail_categories():
    # The first word of a sentence is never taken for a proper name
    assert detail_categories("Sarah") == 0
    assert detail_categories("I talked to Sarah yesterday") == 2
    assert detail_categories("I felt so frustrated after the second cancellation") == 2


def test_slot_coverage():
    phase = get_phase(1)
    assert slot_coverage(phase, {}) == 0.0
    assert slot_coverage(phase, {"situation_description": "missed pickup"}) == 0.5
    assert slot_coverage(phase, PHASE_ONE_FULL) == 1.0


def test_compute_signals_for_confirmation():
    signals = compute_signals(get_phase(1), PHASE_ONE_FULL, "Yes, that's everything.")
    assert signals["slot_coverage"] == 1.0
    assert signals["confirmation"] == 1.0


def test_weighted_score_is_clamped():
    signals = {"slot_coverage": 1.0, "substance": 1.0, "confirmation": 1.0}
    weights = {"slot_coverage": 0.6, "substance": 0.6, "confirmation": 0.6}
    assert weighted_score(signals, weights) == 1.0


def test_terse_first_message_stays_below_threshold():
    context = {"situation_description": "co-parent keeps changing plans"}
    readiness = score_readiness(get_phase(1), context, "My ex keeps changing plans", 0.0)
    assert readiness < 0.7


def test_dense_message_with_full_slots_crosses_threshold():
    readiness = score_readiness(get_phase(1), PHASE_ONE_FULL, DENSE_PICKUP, 0.0)
    assert readiness == pytest.approx(0.8)


def test_empty_input_scores_banked_coverage_only():
    assert score_readiness(get_phase(1), PHASE_ONE_FULL, "", 0.0) == pytest.approx(0.5)


@pytest.mark.parametrize("text", ["", "ok", "hmm, not sure", "whatever"])
def test_readiness_never_decreases_within_a_phase(text):
    assert score_readiness(get_phase(1), {}, text, 0.6) == pytest.approx(0.6)
