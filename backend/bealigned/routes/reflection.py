# /bealigned/routes/reflection.py

import asyncio
import structlog
from fastapi import APIRouter, Request

from bealigned.config.settings import settings
from bealigned.models.api import TurnRequest, PhaseInfo, APIResponse
from bealigned.models.flow import TurnResult
from bealigned.services.reflection_service import reflection_service
from bealigned.utils.rate_limiter import limiter
from bealigned.workflows.definitions import list_phases, readiness_threshold
from bealigned.workflows.validator import load_flow_state

# Turn API and phase catalog listing. Session persistence belongs to the
# caller: the flow state comes in with the request and goes back out with
# the response. Malformed state raises FlowStateValidationError, which the
# app maps to 422.

log = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/reflection",
    tags=["Reflection"]
)


@router.post("/turn", response_model=TurnResult)
@limiter.limit(f"{settings.turn_rate_limit_per_minute}/minute")
async def process_turn(request: Request, body: TurnRequest):
    """Process one user message and return the reply with the next flow state."""
    if body.session_id:
        structlog.contextvars.bind_contextvars(session_id=body.session_id)

    flow_state = load_flow_state(body.flow_state, body.current_phase)

    # Shielded so a client disconnect does not cancel retries mid-flight.
    task = asyncio.ensure_future(reflection_service.process_turn(body.user_input, flow_state))
    result = await asyncio.shield(task)

    log.info(
        "turn_served",
        original_phase=result.original_phase,
        current_phase=result.current_phase,
        error=result.error,
    )
    return result


@router.get("/phases", response_model=APIResponse)
async def get_phases():
    """Phase catalog for progress display."""
    phases = [
        PhaseInfo(
            id=phase.id,
            key=phase.key,
            name=phase.name,
            emoji=phase.emoji,
            label=phase.label,
            tag=phase.tag,
            required_slots=sorted(phase.required_slots),
            max_followups=phase.max_followups,
            readiness_threshold=readiness_threshold(phase),
        ).model_dump()
        for phase in list_phases()
    ]
    return APIResponse(
        success=True,
        message=f"Retrieved {len(phases)} phases",
        data={"phases": phases},
        version=settings.api_version
    )
