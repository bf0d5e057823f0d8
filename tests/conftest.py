"""Shared fixtures for all tests."""

from unittest.mock import MagicMock

import pytest
import requests

from voltchat.core.conversation import Conversation
from voltchat.core.llm_client import LLMClient


def _make_response(status_code: int = 200, body=None, json_error: bool = False) -> MagicMock:
    """Fake requests.Response with the bits the client touches."""
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    if json_error:
        resp.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "", 0)
    else:
        resp.json.return_value = {} if body is None else body
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error", response=resp)
    return resp


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real tokens and timeouts out of the tests."""
    monkeypatch.delenv("LLM_API_TOKEN", raising=False)
    monkeypatch.delenv("LLM_TIMEOUT", raising=False)


@pytest.fixture
def mock_session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(mock_session) -> LLMClient:
    """Client pointed at a fake Ollama server, detection skipped."""
    return LLMClient(
        base_url="http://llm.test:11434/",
        token="secret",
        model="test-model",
        session=mock_session,
        detect=False,
    )


@pytest.fixture
def mock_client():
    fake = MagicMock(spec=LLMClient)
    fake.send_conversation.return_value = "reply"
    return fake


@pytest.fixture
def conversation(mock_client) -> Conversation:
    return Conversation(system_prompt="You are a test assistant.", client=mock_client)


@pytest.fixture
def make_response():
    return _make_response
