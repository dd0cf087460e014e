# backend/tests/unit/test_summary.py
from bealigned.workflows.definitions import get_phase
from bealigned.workflows.summary import summarize


def test_summary_renders_captured_slots_in_order():
    context = {
        "parties_involved": "my ex and the kids",
        "situation_description": "Wednesday pickup missed a third time.",
    }
    assert summarize(get_phase(1), context) == (
        "Identified: Wednesday pickup missed a third time; my ex and the kids"
    )


def test_forced_summary_flags_missing_slots():
    summary = summarize(get_phase(2), {"feelings": "angry"}, forced=True)
    assert summary == "Feelings named: angry. Moved on before fully capturing: what lies beneath"


def test_empty_phase_says_nothing_was_captured():
    assert summarize(get_phase(3), {}) == "What matters: nothing captured yet. Still open: underlying need"


def test_list_slots_are_joined():
    summary = summarize(get_phase(6), {"options": ["swap days", "use a shared calendar"]})
    assert summary == "Options considered: swap days; use a shared calendar"


def test_summary_only_uses_the_phase_own_slots():
    context = {"situation_description": "missed pickup", "underlying_need": "reliability"}
    assert summarize(get_phase(3), context) == "What matters: reliability"
