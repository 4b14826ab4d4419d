import asyncio

import pytest

from autodocs.core.config import settings
from autodocs.generation_logic.orchestrator import GenerationOrchestrator
from autodocs.services.document_generator import DocumentGenerator
from autodocs.services.llm import get_client


class ScriptedCompletion:
    """Stand-in for ``call_llm`` that replays one behaviour per call.

    Each step is either a string (returned as content), an exception instance
    (raised), or the string ``"hang"`` (sleeps past any test timeout).
    """

    def __init__(self, *steps):
        self.steps = list(steps)
        self.prompts: list[str] = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        step = self.steps[len(self.prompts) - 1] if len(self.prompts) <= len(self.steps) else "# Default\n\nContent"
        if isinstance(step, BaseException):
            raise step
        if step == "hang":
            await asyncio.sleep(30)
        return step

    @property
    def call_count(self) -> int:
        return len(self.prompts)


@pytest.fixture(autouse=True)
def _reset_client_cache():
    get_client.cache_clear()
    yield
    get_client.cache_clear()


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-test-key")
    return "sk-test-key"


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", None)


@pytest.fixture
def scripted():
    """Factory for ScriptedCompletion instances."""
    return ScriptedCompletion


@pytest.fixture
def make_orchestrator():
    def _make(completion, timeout: float = 1.0, listener=None) -> GenerationOrchestrator:
        generator = DocumentGenerator(completion=completion, timeout=timeout)
        return GenerationOrchestrator(generator=generator, listener=listener)

    return _make
