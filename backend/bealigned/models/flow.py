# /bealigned/models/flow.py

from typing import Optional, List, Dict, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from bealigned.workflows.definitions import PHASES, FIRST_PHASE_ID

# Slot values are plain strings, except list slots such as "options".
SlotValue = Union[str, List[str]]


class Turn(BaseModel):
    """One message in the conversation history."""
    role: Literal["user", "assistant"]
    text: str = Field(default="", description="Message text as shown to the user")
    phase_at_time: int = Field(..., description="Phase in effect when the message was produced")
    readiness: Optional[float] = Field(
        default=None, ge=0.0, le=1.0,
        description="Readiness computed for the turn (assistant messages only)"
    )

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("phase_at_time")
    @classmethod
    def phase_must_exist(cls, v):
        if v not in PHASES:
            raise ValueError(f"Unknown phase {v}")
        return v


class FlowState(BaseModel):
    """
    Serializable accumulator carried between turns.

    The engine never stores it: each call receives a snapshot and returns a
    new one. The caller is the source of truth for persistence.
    """
    readiness: float = Field(default=0.0, ge=0.0, le=1.0, description="Readiness for the current phase")
    context: Dict[str, SlotValue] = Field(default_factory=dict, description="Captured slot values")
    last_prompt: str = Field(default="", description="Last assistant message")
    last_response: str = Field(default="", description="Last user message")
    conversation_history: List[Turn] = Field(default_factory=list)
    current_phase: int = Field(default=FIRST_PHASE_ID, description="Phase in effect")
    turns_in_phase: int = Field(default=0, ge=0, description="Stayed turns in the current phase")
    completed: bool = Field(default=False, description="Set once the terminal phase has been completed")
    forced_phases: List[int] = Field(default_factory=list, description="Phases left through a forced advance")

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("current_phase")
    @classmethod
    def current_phase_must_exist(cls, v):
        if v not in PHASES:
            raise ValueError(f"currentPhase {v} is out of range 1..{len(PHASES)}")
        return v

    @field_validator("forced_phases")
    @classmethod
    def forced_phases_must_exist(cls, v):
        unknown = [phase_id for phase_id in v if phase_id not in PHASES]
        if unknown:
            raise ValueError(f"forcedPhases contains unknown phases: {unknown}")
        return v


class TurnResult(BaseModel):
    """Output envelope of one processed turn."""
    content: str = Field(..., description="Assistant reply, always starting with the canonical phase tag")
    readiness: float = Field(..., ge=0.0, le=1.0, description="Readiness computed for the phase this turn was scored in")
    original_phase: int = Field(..., description="Phase in effect when the call began")
    current_phase: int = Field(..., description="Phase in effect after the decision")
    phase_advanced: bool = False
    forced: bool = Field(default=False, description="True when the advance came from the follow-up cap")
    session_complete: bool = False
    summary: str = ""
    flow_state: FlowState
    error: Optional[str] = Field(default=None, description="Error code when a fallback result was produced")
