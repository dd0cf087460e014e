# /bealigned/models/api.py

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# This file contains Pydantic models that define the structure of data for
# API requests and responses, ensuring type safety and validation.


class TurnRequest(BaseModel):
    """Body of POST /reflection/turn. Field names are camelCase on the wire."""
    user_input: str = Field(..., max_length=4000)
    current_phase: Optional[Union[int, str]] = Field(
        default=None, description="Phase id or key; must agree with flowState.currentPhase"
    )
    # Validated by load_flow_state so malformed state maps to a typed error
    flow_state: Optional[Dict[str, Any]] = None
    session_id: Optional[str] = Field(default=None, max_length=128)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PhaseInfo(BaseModel):
    id: int
    key: str
    name: str
    emoji: str
    label: str
    tag: str
    required_slots: List[str]
    max_followups: int
    readiness_threshold: float


class APIResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Dict] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str
