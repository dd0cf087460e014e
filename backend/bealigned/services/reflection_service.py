# /bealigned/services/reflection_service.py

import structlog

from bealigned.config.strings import GENERATION_UNAVAILABLE, ERROR_GENERATION_UNAVAILABLE
from bealigned.models.domain import Phase
from bealigned.models.flow import FlowState, Turn, TurnResult
from bealigned.services.ai_service import AIService, ai_service
from bealigned.services.prompt_builder import build_turn_prompt, build_advance_prompt
from bealigned.utils.metrics import reflection_turns_counter, phase_transitions_counter
from bealigned.workflows.context import merge_context
from bealigned.workflows.definitions import get_phase
from bealigned.workflows.engine import decide_advancement, apply_decision
from bealigned.workflows.errors import GenerationError
from bealigned.workflows.scoring import detect_confirmation, score_readiness
from bealigned.workflows.summary import summarize
from bealigned.workflows.tags import ensure_phase_tag, has_valid_tag, parse_tag

# The turn orchestrator. It is stateless between calls: every call receives a
# FlowState snapshot and returns a new one inside the TurnResult.

log = structlog.get_logger(__name__)


class ReflectionService:
    def __init__(self, ai: AIService):
        self.ai_service = ai

    async def process_turn(self, user_input: str, flow_state: FlowState) -> TurnResult:
        """
        Process one user message against a flow state snapshot.

        Makes one generation call, plus a second one scoped to the new phase
        only when the turn advances. Generation failures never raise: they
        produce a fallback result that carries the untouched flow state.
        """
        user_text = (user_input or "").strip()
        phase = get_phase(flow_state.current_phase)

        history = list(flow_state.conversation_history)
        history.append(Turn(role="user", text=user_text, phase_at_time=phase.id))

        try:
            generated = await self.ai_service.generate_reflection(
                build_turn_prompt(phase, flow_state.context, history, user_text)
            )
        except GenerationError as e:
            return self._fallback_result(flow_state, phase, e)

        # Earlier phases' slots are frozen; only this phase's slots may be rewritten.
        context = merge_context(flow_state.context, generated.slots, writable=phase.required_slots)

        confirmed = detect_confirmation(user_text)
        readiness = score_readiness(phase, context, user_text, flow_state.readiness)
        decision = decide_advancement(phase, flow_state.turns_in_phase, readiness, confirmed)

        reply_phase = phase
        reply = generated.reply
        if decision["advance"]:
            if not decision["completed"]:
                reply_phase = get_phase(decision["next_phase"])
            try:
                rescoped = await self.ai_service.generate_reflection(
                    build_advance_prompt(
                        phase,
                        reply_phase,
                        context,
                        history,
                        user_text,
                        forced=decision["forced"],
                        completed=decision["completed"],
                    )
                )
            except GenerationError as e:
                return self._fallback_result(flow_state, phase, e)
            reply = rescoped.reply

        if not has_valid_tag(reply, reply_phase):
            log.info("phase_tag_repaired", expected=reply_phase.id, found=parse_tag(reply))
        content = ensure_phase_tag(reply, reply_phase)
        history.append(
            Turn(role="assistant", text=content, phase_at_time=reply_phase.id, readiness=readiness)
        )

        new_state = apply_decision(
            flow_state,
            decision,
            readiness=readiness,
            context=context,
            history=history,
            last_prompt=content,
            last_response=user_text,
        )
        summary = summarize(phase, context, forced=decision["forced"])

        self._record_outcome(phase, decision)
        log.info(
            "turn_processed",
            original_phase=phase.id,
            current_phase=new_state.current_phase,
            readiness=round(readiness, 3),
            confirmed=confirmed,
            advanced=decision["advance"],
            forced=decision["forced"],
            completed=decision["completed"],
            turns_in_phase=new_state.turns_in_phase,
        )

        return TurnResult(
            content=content,
            readiness=readiness,
            original_phase=phase.id,
            current_phase=new_state.current_phase,
            phase_advanced=new_state.current_phase != phase.id,
            forced=decision["forced"],
            session_complete=new_state.completed,
            summary=summary,
            flow_state=new_state,
        )

    def _fallback_result(self, flow_state: FlowState, phase: Phase, error: Exception) -> TurnResult:
        log.error("generation_failed", phase=phase.id, error=str(error))
        reflection_turns_counter.labels(outcome="fallback").inc()
        return TurnResult(
            content=ensure_phase_tag(GENERATION_UNAVAILABLE, phase),
            readiness=flow_state.readiness,
            original_phase=phase.id,
            current_phase=phase.id,
            phase_advanced=False,
            forced=False,
            session_complete=flow_state.completed,
            summary=summarize(phase, flow_state.context),
            flow_state=flow_state,
            error=ERROR_GENERATION_UNAVAILABLE,
        )

    def _record_outcome(self, phase: Phase, decision) -> None:
        if not decision["advance"]:
            reflection_turns_counter.labels(outcome="stayed").inc()
            return

        if decision["completed"]:
            outcome = "completed"
        elif decision["forced"]:
            outcome = "forced"
        else:
            outcome = "advanced"
        reflection_turns_counter.labels(outcome=outcome).inc()
        phase_transitions_counter.labels(
            from_phase=str(phase.id), forced=str(decision["forced"]).lower()
        ).inc()
        log.info(
            "phase_advanced",
            from_phase=phase.id,
            to_phase=decision["next_phase"],
            forced=decision["forced"],
            completed=decision["completed"],
        )


# Globally accessible instance
reflection_service = ReflectionService(ai_service)
