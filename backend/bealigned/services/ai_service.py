# /bealigned/services/ai_service.py

import json
import re
import logging
import asyncio
import tenacity
from typing import Optional, Tuple
from google import genai
from google.genai.types import GenerateContentConfig
from openai import AsyncOpenAI

from bealigned.config.settings import settings
from bealigned.models.domain import GenerationResult
from bealigned.utils.circuit_breaker import CircuitBreaker
from bealigned.utils.metrics import ai_requests_counter
from bealigned.workflows.errors import GenerationError


# This service encapsulates all interactions with the external text-generation
# models (Google Gemini first, OpenAI as fallback). It returns the reply text
# plus the model's best-effort slot extraction; it never decides phases.

logger = logging.getLogger(__name__)

JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

OPENAI_SYSTEM_MESSAGE = "You are a reflection guide designed to output JSON."


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_generation(raw: Optional[str], model: Optional[str] = None) -> GenerationResult:
    """
    Parse raw generator output into a GenerationResult.

    The model is asked for {"reply": ..., "slots": {...}}. Output wrapped in
    code fences or surrounded by prose is unwrapped. Plain, non-JSON text is
    accepted as the reply with no extraction.

    Raises:
        GenerationError: if the output is empty, or is JSON without a usable reply
    """
    text = _strip_code_fences(raw or "")
    if not text:
        raise GenerationError("Text generator returned an empty response")

    payload = None
    try:
        payload = json.loads(text)
    except ValueError:
        match = JSON_OBJECT_RE.search(text)
        if match:
            try:
                payload = json.loads(match.group(0))
            except ValueError:
                payload = None

    if payload is None:
        if text.startswith("{"):
            raise GenerationError("Text generator returned malformed JSON")
        return GenerationResult(reply=text, slots=None, model=model)

    if not isinstance(payload, dict):
        raise GenerationError("Text generator returned JSON that is not an object")

    reply = payload.get("reply") or payload.get("next_prompt")
    if not isinstance(reply, str) or not reply.strip():
        raise GenerationError("Text generator response has no reply text")

    slots = payload.get("slots")
    if slots is None:
        slots = payload.get("context_updates")
    return GenerationResult(
        reply=reply.strip(),
        slots=slots if isinstance(slots, dict) else None,
        model=model
    )


class AIService:
    def __init__(self):
        if settings.gemini_api_key:
            self.gemini_client = genai.Client(api_key=settings.gemini_api_key)
            logger.info(f"Using Gemini model: {settings.gemini_model}")
        else:
            self.gemini_client = None

        if settings.openai_api_key:
            self.openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
        else:
            self.openai_client = None

        self.gemini_breaker = CircuitBreaker("gemini")
        self.openai_breaker = CircuitBreaker("openai")

    @property
    def is_configured(self) -> bool:
        return bool(self.gemini_client or self.openai_client)

    async def generate_reflection(self, prompt: str) -> GenerationResult:
        """
        Generate a phase-scoped reply and slot extraction for a prompt.

        Each provider call is bounded by settings.generation_timeout_seconds, so a
        hung Gemini call counts against its breaker and falls through to OpenAI.
        A failed attempt is retried with exponential backoff until
        settings.generation_max_attempts is reached.

        Raises:
            GenerationError: when every attempt failed
        """
        backoff = settings.generation_backoff_seconds
        # Bounds the whole provider chain: one timeout per provider
        chain_timeout = settings.generation_timeout_seconds * 2
        try:
            async for attempt in tenacity.AsyncRetrying(
                retry=tenacity.retry_if_exception_type((GenerationError, asyncio.TimeoutError)),
                stop=tenacity.stop_after_attempt(settings.generation_max_attempts),
                wait=tenacity.wait_exponential(multiplier=backoff, min=backoff, max=backoff * 4),
                before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    raw, model = await asyncio.wait_for(
                        self._request_completion(prompt),
                        timeout=chain_timeout
                    )
                    return parse_generation(raw, model)
        except asyncio.TimeoutError as e:
            raise GenerationError(f"Text generation timed out after {chain_timeout}s") from e

    async def _request_completion(self, prompt: str) -> Tuple[str, str]:
        """Try Gemini first, then OpenAI. Returns (raw_text, model_name)."""
        failures = []

        if self.gemini_client:
            try:
                text = await self.gemini_breaker.call(self._bounded, self._generate_gemini_json, prompt)
                if text:
                    ai_requests_counter.labels(model="gemini", status="success").inc()
                    return text, settings.gemini_model
                failures.append("gemini: empty response")
                ai_requests_counter.labels(model="gemini", status="empty").inc()
            except Exception as e:
                logger.error(f"Gemini reflection call failed: {e}. Trying OpenAI fallback.")
                ai_requests_counter.labels(model="gemini", status="error").inc()
                failures.append(f"gemini: {e}")

        if self.openai_client:
            try:
                text = await self.openai_breaker.call(self._bounded, self._generate_openai_json, prompt)
                if text:
                    ai_requests_counter.labels(model="openai", status="success").inc()
                    return text, settings.openai_model
                failures.append("openai: empty response")
                ai_requests_counter.labels(model="openai", status="empty").inc()
            except Exception as e:
                logger.error(f"OpenAI reflection call failed: {e}")
                ai_requests_counter.labels(model="openai", status="error").inc()
                failures.append(f"openai: {e}")

        if not failures:
            raise GenerationError("No text-generation provider is configured")
        raise GenerationError("; ".join(failures))

    async def _bounded(self, generate, prompt: str) -> str:
        """Run one provider call under the per-provider timeout."""
        timeout = settings.generation_timeout_seconds
        try:
            return await asyncio.wait_for(generate(prompt), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise GenerationError(f"timed out after {timeout}s") from e

    async def _generate_gemini_json(self, prompt: str) -> str:
        """Generate a JSON response using the google-genai client."""
        response = await asyncio.to_thread(
            self.gemini_client.models.generate_content,
            model=settings.gemini_model,
            contents=prompt,
            config=GenerateContentConfig(
                temperature=settings.generation_temperature,
                max_output_tokens=settings.generation_max_output_tokens,
                response_mime_type="application/json"
            )
        )
        return (response.text or "").strip()

    async def _generate_openai_json(self, prompt: str) -> str:
        """Generate a JSON response from OpenAI using its JSON mode."""
        response = await self.openai_client.chat.completions.create(
            model=settings.openai_model,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": OPENAI_SYSTEM_MESSAGE},
                {"role": "user", "content": prompt}
            ],
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_output_tokens
        )
        return (response.choices[0].message.content or "").strip()


# Globally accessible instance
ai_service = AIService()
