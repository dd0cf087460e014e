# /bealigned/models/domain.py

from typing import Optional, FrozenSet, Dict, Any, TypedDict
from pydantic import BaseModel, ConfigDict, Field

# Core domain models for the reflection protocol. These are immutable value
# objects shared by the pure workflow modules and the services.


class Phase(BaseModel):
    """One stage of the seven-step reflection protocol."""
    id: int = Field(..., ge=1, description="Position in the protocol (1-based)")
    key: str = Field(..., description="Stable machine key, e.g. 'issue'")
    name: str = Field(..., description="Short display name used in the phase tag")
    emoji: str = Field(default="", description="Decorative marker for progress display")
    goal: str = Field(default="", description="What the assistant should help the user do in this phase")
    required_slots: FrozenSet[str] = Field(default_factory=frozenset)
    max_followups: int = Field(default=3, ge=1, description="Stayed turns allowed before a forced advance")
    min_readiness: Optional[float] = Field(
        default=None, gt=0.0, le=1.0,
        description="Per-phase advance threshold; falls back to settings.readiness_threshold"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def tag(self) -> str:
        return f"[Phase {self.id}: {self.name}]"

    @property
    def label(self) -> str:
        return f"Phase {self.id} · {self.name}"


class SlotDefinition(BaseModel):
    """Describes one piece of information a phase tries to elicit."""
    key: str
    label: str
    description: str
    is_list: bool = False

    model_config = ConfigDict(frozen=True)


class ReadinessSignals(TypedDict):
    """The three weighted inputs of the readiness score."""
    slot_coverage: float
    substance: float
    confirmation: float


class PhaseDecision(TypedDict):
    """Result of the phase advancement policy."""
    advance: bool
    forced: bool
    completed: bool
    next_phase: Optional[int]


class GenerationResult(BaseModel):
    """Reply text plus best-effort slot extraction returned by the text generator."""
    reply: str
    slots: Optional[Dict[str, Any]] = None
    model: Optional[str] = None
