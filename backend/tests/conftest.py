from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from dotenv import load_dotenv

# Load the test environment FIRST, before any bealigned imports, so Settings
# sees it: no provider keys, no backoff delay, generous rate limits.
load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env.test", override=True)

from bealigned.main import app  # noqa: E402
from bealigned.models.domain import GenerationResult  # noqa: E402
from bealigned.services.reflection_service import ReflectionService  # noqa: E402
from bealigned.workflows.errors import GenerationError  # noqa: E402

# Marker that only the re-scope (advance) prompt contains
ADVANCE_MARKER = "NEW PHASE:"


class ScriptedGenerator:
    """
    Stands in for AIService. Base-turn and re-scope calls pop from separate
    scripts; an Exception in a script is raised instead of returned.
    """

    def __init__(self, turns=None, advances=None):
        self.turns = list(turns or [])
        self.advances = list(advances or [])
        self.prompts = []

    @property
    def advance_prompts(self):
        return [p for p in self.prompts if ADVANCE_MARKER in p]

    async def generate_reflection(self, prompt):
        self.prompts.append(prompt)
        script = self.advances if ADVANCE_MARKER in prompt else self.turns
        if not script:
            raise GenerationError("script exhausted")
        result = script.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def make_reply(text, **slots):
    return GenerationResult(reply=text, slots=slots or None, model="scripted")


@pytest.fixture
def reply():
    """Builds a GenerationResult: reply("text", situation_description="...")."""
    return make_reply


@pytest.fixture
def scripted_service():
    """Returns a factory: (service, generator) = scripted_service(turns=[...], advances=[...])."""
    def _make(turns=None, advances=None):
        generator = ScriptedGenerator(turns, advances)
        return ReflectionService(generator), generator
    return _make


@pytest.fixture(scope="function")
def test_client():
    """
    Provides a TestClient for API integration tests.
    The app's lifespan (startup/shutdown events) is managed by the TestClient.
    """
    with TestClient(app) as client:
        yield client
