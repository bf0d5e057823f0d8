"""Contract tests for the LLM client (mocked, no real API calls)."""

import pytest
import requests
from structlog.testing import capture_logs

from voltchat.api.schemas import ApiDialect, ClientConfig, Message
from voltchat.core.llm_client import LLMClient, extract_reply

MESSAGES = [
    Message(role="system", content="be brief"),
    Message(role="user", content="hi"),
]


class TestExtractReply:

    def test_choices_shape(self):
        assert extract_reply({"choices": [{"message": {"content": "X"}}]}) == "X"

    def test_message_shape(self):
        assert extract_reply({"message": {"content": "Y"}}) == "Y"

    def test_choices_wins_over_message(self):
        body = {"choices": [{"message": {"content": "X"}}], "message": {"content": "Y"}}
        assert extract_reply(body) == "X"

    def test_empty_choices_falls_through_to_message(self):
        assert extract_reply({"choices": [], "message": {"content": "Y"}}) == "Y"

    def test_matched_shape_missing_content(self):
        assert extract_reply({"choices": [{"message": {}}]}) == ""
        assert extract_reply({"message": {"role": "assistant"}}) == ""

    def test_unexpected_structure_warns(self):
        with capture_logs() as logs:
            assert extract_reply({}) == ""
        assert logs[0]["event"] == "llm.unexpected_json_structure"
        assert logs[0]["log_level"] == "warning"

    def test_non_object_body(self):
        with capture_logs() as logs:
            assert extract_reply(["nope"]) == ""
        assert logs[0]["event"] == "llm.unexpected_json_structure"


class TestClientInit:

    def test_detection_runs_in_constructor(self, mock_session, make_response):
        mock_session.get.return_value = make_response(200, {"models": []})
        client = LLMClient(base_url="http://llm.test:11434/", session=mock_session)
        assert client.dialect is ApiDialect.OLLAMA
        assert client.endpoints.chat == "http://llm.test:11434/api/chat"

    def test_deferred_detection(self, mock_session, make_response):
        client = LLMClient(session=mock_session, detect=False)
        assert client.dialect is ApiDialect.UNKNOWN
        mock_session.get.assert_not_called()

        mock_session.get.return_value = make_response(200)
        assert client.detect_dialect() is ApiDialect.OLLAMA

    def test_detect_again_replaces_dialect(self, mock_session, make_response):
        mock_session.get.return_value = make_response(200)
        client = LLMClient(session=mock_session)
        assert client.dialect is ApiDialect.OLLAMA

        mock_session.get.side_effect = requests.ConnectionError("gone")
        assert client.detect_dialect() is ApiDialect.UNKNOWN
        assert client.endpoints.chat == "http://localhost:11434/api/chat/completions"

    def test_token_from_env(self, mock_session, monkeypatch):
        monkeypatch.setenv("LLM_API_TOKEN", "env-token")
        client = LLMClient(session=mock_session, detect=False)
        assert client.config.token == "env-token"

    def test_from_config(self, mock_session):
        config = ClientConfig(base_url="http://x:1/", model="m", token="t", temperature=0.7, timeout=3)
        client = LLMClient.from_config(config, session=mock_session, detect=False)
        assert client.config is config

    def test_context_manager_closes_session(self, mock_session):
        with LLMClient(session=mock_session, detect=False):
            pass
        mock_session.close.assert_called_once()


class TestSendConversation:

    def test_payload_and_headers(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, {"message": {"content": "hello"}})

        assert client.send_conversation(MESSAGES) == "hello"

        args, kwargs = mock_session.request.call_args
        assert args == ("POST", "http://llm.test:11434/api/chat/completions")
        assert kwargs["json"] == {
            "model": "test-model",
            "messages": [
                {"role": "system", "content": "be brief"},
                {"role": "user", "content": "hi"},
            ],
            "temperature": 0.2,
            "stream": False,
        }
        assert kwargs["headers"]["Authorization"] == "Bearer secret"

    def test_uses_detected_chat_endpoint(self, client, mock_session, make_response):
        mock_session.get.return_value = make_response(200)
        client.detect_dialect()
        mock_session.request.return_value = make_response(200, {"message": {"content": "ok"}})

        client.send_conversation(MESSAGES)

        assert mock_session.request.call_args.args[1] == "http://llm.test:11434/api/chat"

    def test_empty_token_still_sends_header(self, mock_session, make_response):
        client = LLMClient(session=mock_session, detect=False)
        mock_session.request.return_value = make_response(200, {"message": {"content": "ok"}})
        client.send_conversation(MESSAGES)
        assert mock_session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer "

    def test_accepts_plain_dicts(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, {"choices": [{"message": {"content": "X"}}]})
        assert client.send_conversation([{"role": "user", "content": "hi"}]) == "X"

    def test_timeout_forwarded(self, mock_session, make_response):
        client = LLMClient(session=mock_session, detect=False, timeout=7)
        mock_session.request.return_value = make_response(200, {"message": {"content": "ok"}})
        client.send_conversation(MESSAGES)
        assert mock_session.request.call_args.kwargs["timeout"] == 7

    @pytest.mark.parametrize("failure", [
        requests.ConnectionError("refused"),
        requests.Timeout("slow"),
    ])
    def test_network_error_returns_empty(self, client, mock_session, failure):
        mock_session.request.side_effect = failure
        with capture_logs() as logs:
            assert client.send_conversation(MESSAGES) == ""
        assert logs[-1]["event"] == "llm.request_failed"
        assert logs[-1]["log_level"] == "error"

    def test_http_error_returns_empty(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(500)
        with capture_logs() as logs:
            assert client.send_conversation(MESSAGES) == ""
        assert "500" in logs[-1]["error"]

    def test_invalid_json_returns_empty(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, json_error=True)
        assert client.send_conversation(MESSAGES) == ""


class TestSendPrompt:

    def test_default_system_prompt(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, {"message": {"content": "ok"}})
        client.send_prompt("check this")
        sent = mock_session.request.call_args.kwargs["json"]["messages"]
        assert sent == [
            {"role": "system", "content": "You are a senior application security engineer."},
            {"role": "user", "content": "check this"},
        ]

    def test_custom_system_prompt(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, {"message": {"content": "ok"}})
        client.send_prompt("hi", system_prompt="be a pirate")
        sent = mock_session.request.call_args.kwargs["json"]["messages"]
        assert sent[0]["content"] == "be a pirate"


class TestGetModels:

    def test_returns_body(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, {"data": [{"id": "a"}]})
        assert client.get_models() == {"data": [{"id": "a"}]}

        args, kwargs = mock_session.request.call_args
        assert args == ("GET", "http://llm.test:11434/api/models")
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["headers"]["Accept"] == "application/json"

    def test_failure_returns_empty_object(self, client, mock_session):
        mock_session.request.side_effect = requests.ConnectionError("refused")
        assert client.get_models() == {}

    def test_non_object_returns_empty_object(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, ["a", "b"])
        assert client.get_models() == {}
