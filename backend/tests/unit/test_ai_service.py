# backend/tests/unit/test_ai_service.py
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from bealigned.config.settings import settings
from bealigned.services.ai_service import AIService, parse_generation
from bealigned.utils.circuit_breaker import CircuitBreaker, CircuitState
from bealigned.workflows.errors import GenerationError

VALID_JSON = '{"reply": "[Phase 1: Name It] What happened?", "slots": {"situation_description": "missed pickup"}}'


# --- parse_generation ---

def test_parse_plain_json():
    result = parse_generation(VALID_JSON, "gemini-2.5-flash")
    assert result.reply == "[Phase 1: Name It] What happened?"
    assert result.slots == {"situation_description": "missed pickup"}
    assert result.model == "gemini-2.5-flash"


def test_parse_fenced_json():
    result = parse_generation(f"```json\n{VALID_JSON}\n```")
    assert result.slots == {"situation_description": "missed pickup"}


def test_parse_json_surrounded_by_prose():
    result = parse_generation('Sure! {"reply": "Hi", "slots": {}} Hope that helps')
    assert result.reply == "Hi"
    assert result.slots == {}


def test_parse_accepts_legacy_field_names():
    result = parse_generation('{"next_prompt": "Hi", "context_updates": {"feelings": "sad"}}')
    assert result.reply == "Hi"
    assert result.slots == {"feelings": "sad"}


def test_plain_text_becomes_reply_without_extraction():
    result = parse_generation("Tell me more about Wednesday.")
    assert result.reply == "Tell me more about Wednesday."
    assert result.slots is None


def test_non_object_slots_are_ignored():
    assert parse_generation('{"reply": "Hi", "slots": "sad"}').slots is None


@pytest.mark.parametrize("raw", [None, "", "   ", "```\n```", '{"slots": {}}', '{"reply": "broken', "[1, 2]"])
def test_unusable_output_raises(raw):
    with pytest.raises(GenerationError):
        parse_generation(raw)


# --- AIService ---

@pytest.mark.asyncio
async def test_failed_attempt_is_retried_once(mocker):
    service = AIService()
    mock_request = mocker.patch.object(
        service, "_request_completion", new_callable=AsyncMock,
        side_effect=[GenerationError("flaky"), (VALID_JSON, "gemini-2.5-flash")]
    )

    result = await service.generate_reflection("prompt")

    assert result.reply == "[Phase 1: Name It] What happened?"
    assert mock_request.await_count == 2


@pytest.mark.asyncio
async def test_repeated_failure_raises_generation_error(mocker):
    service = AIService()
    mock_request = mocker.patch.object(
        service, "_request_completion", new_callable=AsyncMock, side_effect=GenerationError("down")
    )

    with pytest.raises(GenerationError):
        await service.generate_reflection("prompt")
    assert mock_request.await_count == settings.generation_max_attempts


@pytest.mark.asyncio
async def test_unparseable_output_is_retried(mocker):
    service = AIService()
    mock_request = mocker.patch.object(
        service, "_request_completion", new_callable=AsyncMock,
        side_effect=[('{"slots": {}}', "gpt-4o"), (VALID_JSON, "gpt-4o")]
    )

    result = await service.generate_reflection("prompt")

    assert result.model == "gpt-4o"
    assert mock_request.await_count == 2


@pytest.mark.asyncio
async def test_timeout_becomes_generation_error(mocker, monkeypatch):
    monkeypatch.setattr(settings, "generation_timeout_seconds", 0.01)
    service = AIService()

    async def hang(prompt):
        await asyncio.sleep(1)

    mocker.patch.object(service, "_request_completion", side_effect=hang)

    with pytest.raises(GenerationError) as exc_info:
        await service.generate_reflection("prompt")
    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_no_provider_configured_raises():
    service = AIService()
    service.gemini_client = None
    service.openai_client = None

    assert service.is_configured is False
    with pytest.raises(GenerationError):
        await service.generate_reflection("prompt")


@pytest.mark.asyncio
async def test_openai_is_used_when_gemini_fails(mocker):
    service = AIService()
    service.gemini_client = MagicMock()
    service.openai_client = MagicMock()
    mocker.patch.object(service, "_generate_gemini_json", new_callable=AsyncMock, side_effect=RuntimeError("quota"))
    mock_openai = mocker.patch.object(service, "_generate_openai_json", new_callable=AsyncMock, return_value=VALID_JSON)

    result = await service.generate_reflection("prompt")

    assert result.model == settings.openai_model
    mock_openai.assert_awaited_once_with("prompt")


@pytest.mark.asyncio
async def test_gemini_request_asks_for_json():
    service = AIService()
    service.gemini_client = MagicMock()
    service.gemini_client.models.generate_content.return_value = MagicMock(text=f"  {VALID_JSON}  ")

    text = await service._generate_gemini_json("prompt")

    assert text == VALID_JSON
    kwargs = service.gemini_client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == settings.gemini_model
    assert kwargs["config"].response_mime_type == "application/json"


@pytest.mark.asyncio
async def test_hung_gemini_call_falls_back_to_openai(mocker, monkeypatch):
    monkeypatch.setattr(settings, "generation_timeout_seconds", 0.05)
    service = AIService()
    service.gemini_client = MagicMock()
    service.openai_client = MagicMock()

    async def hang(prompt):
        await asyncio.sleep(1)

    mocker.patch.object(service, "_generate_gemini_json", new_callable=AsyncMock, side_effect=hang)
    mocker.patch.object(service, "_generate_openai_json", new_callable=AsyncMock, return_value=VALID_JSON)

    result = await service.generate_reflection("prompt")

    assert result.model == settings.openai_model
    assert service.gemini_breaker.failure_count == 1


@pytest.mark.asyncio
async def test_repeated_gemini_timeouts_open_its_breaker(mocker, monkeypatch):
    monkeypatch.setattr(settings, "generation_timeout_seconds", 0.05)
    service = AIService()
    service.gemini_client = MagicMock()
    service.openai_client = MagicMock()
    service.gemini_breaker = CircuitBreaker("gemini", failure_threshold=2)

    async def hang(prompt):
        await asyncio.sleep(1)

    mock_gemini = mocker.patch.object(service, "_generate_gemini_json", new_callable=AsyncMock, side_effect=hang)
    mocker.patch.object(service, "_generate_openai_json", new_callable=AsyncMock, return_value=VALID_JSON)

    for _ in range(4):
        result = await service.generate_reflection("prompt")
        assert result.model == settings.openai_model

    assert service.gemini_breaker.state == CircuitState.OPEN
    assert mock_gemini.await_count == 2
