"""Shared fixtures: test settings and a scripted stand-in for the LLM client."""
import json
import threading
from typing import Any, Dict, List, Tuple

import pytest

from cvtransformer.core.config import Settings
from cvtransformer.core.exceptions import LLMCallError
from cvtransformer.services.cv import orchestrator

PROMPT_NAMES = {
    orchestrator.PROFILE_PROMPT: "profile",
    orchestrator.PERSONAL_DETAILS_PROMPT: "personal_details",
    orchestrator.COUNTRY_EXPERIENCE_PROMPT: "country_experience",
    orchestrator.QUALIFICATIONS_PROMPT: "qualifications",
    orchestrator.PUBLICATIONS_PROMPT: "publications",
    orchestrator.EXPERIENCE_ENTRY_PROMPT: "experience_entry",
    orchestrator.WHOLE_DOCUMENT_PROMPT: "whole_document",
}


class FakeLLMClient:
    """
    Answers chat_text from canned responses keyed by prompt name.

    A response may be a dict (sent as JSON), a raw string, an exception
    instance (raised), or a callable taking the user message.
    """

    def __init__(self, responses: Dict[str, Any]):
        self.responses = responses
        self.calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def chat_text(self, messages, timeout=None, *, max_tokens=None) -> str:
        name = PROMPT_NAMES[messages[0]["content"]]
        user = messages[1]["content"]
        with self._lock:
            self.calls.append((name, user))
        response = self.responses.get(name)
        if callable(response):
            response = response(user)
        if isinstance(response, Exception):
            raise response
        if response is None:
            raise LLMCallError(f"no canned response for {name}")
        return response if isinstance(response, str) else json.dumps(response)

    def count(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        LLM_PROVIDER="openai",
        OPENAI_API_KEY="test-key",
        LLM_RETRY_DELAY_S=0,
        LLM_MAX_ATTEMPTS=3,
    )


@pytest.fixture
def default_responses() -> Dict[str, Any]:
    def experience(user: str) -> Dict[str, Any]:
        first_line = user.splitlines()[0]
        return {
            "dates": first_line[:4],
            "role": first_line,
            "client": "",
            "location": "",
            "description": user,
            "responsibilities": [],
            "achievements": [],
        }

    return {
        "profile": {"profile": "Economist with 15 years of experience."},
        "personal_details": {
            "name": "Jane Doe",
            "title": "Senior Economist",
            "email": "",
            "phone": "",
            "location": "Nairobi",
            "nationality": "Kenyan",
            "languages": [{"language": "English", "proficiency": "Native"}],
        },
        "country_experience": {"countries": ["Kenya", "Uganda", "Kenya"]},
        "qualifications": {"qualifications": [{"year": "2010", "degree": "BSc Economics",
                                                "institution": "University of Nairobi", "details": ""}]},
        "publications": {"publications": [{"citation": "Doe, J. (2019). Markets. Journal of X."}]},
        "experience_entry": experience,
    }


@pytest.fixture
def fake_llm(default_responses) -> FakeLLMClient:
    return FakeLLMClient(default_responses)
