"""Tests for the Gemini REST client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from app.core import config
from app.services import gemini_service


def _response(payload, status=200):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    return response


def _candidate(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestGenerateText:
    """Single completions."""

    def test_prompt_payload(self):
        """A bare prompt is sent as one user turn with the API key as a query parameter."""
        with patch("app.services.gemini_service.requests.post", return_value=_response(_candidate("ok"))) as post:
            assert gemini_service.generate_text("Привет") == "ok"

        kwargs = post.call_args.kwargs
        assert kwargs["params"] == {"key": config.GEMINI_API_KEY}
        assert kwargs["json"]["contents"] == [{"role": "user", "parts": [{"text": "Привет"}]}]
        assert "systemInstruction" not in kwargs["json"]
        assert kwargs["timeout"] == config.HTTP_TIMEOUT

    def test_chat_payload(self):
        """History roles map assistant to model and the system prompt is attached."""
        messages = [{"role": "user", "content": "Вопрос"}, {"role": "assistant", "content": "Ответ"}]
        with patch("app.services.gemini_service.requests.post", return_value=_response(_candidate("ok"))) as post:
            gemini_service.generate_text(system_prompt="Вы агроном", messages=messages)

        payload = post.call_args.kwargs["json"]
        assert [c["role"] for c in payload["contents"]] == ["user", "model"]
        assert payload["systemInstruction"] == {"parts": [{"text": "Вы агроном"}]}

    def test_joins_parts(self):
        """Multi-part candidates are concatenated."""
        payload = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
        with patch("app.services.gemini_service.requests.post", return_value=_response(payload)):
            assert gemini_service.generate_text("x") == "ab"

    def test_missing_key(self, monkeypatch):
        """No API key is a ValueError before any request."""
        monkeypatch.setattr(config, "GEMINI_API_KEY", None)
        with patch("app.services.gemini_service.requests.post") as post:
            with pytest.raises(ValueError):
                gemini_service.generate_text("x")
        post.assert_not_called()

    def test_nothing_to_send(self):
        """Empty prompt and history is rejected."""
        with pytest.raises(ValueError):
            gemini_service.generate_text()

    def test_no_candidates(self):
        """An empty candidate list fails after the configured attempts."""
        with patch("app.services.gemini_service.requests.post", return_value=_response({"candidates": []})):
            with pytest.raises(RuntimeError, match="No candidates"):
                gemini_service.generate_text("x")

    def test_rate_limit_retry(self, monkeypatch):
        """A 429 waits and retries when more than one attempt is configured."""
        monkeypatch.setattr(config, "MAX_RETRIES", 2)
        responses = [_response({}, status=429), _response(_candidate("после паузы"))]
        with patch("app.services.gemini_service.requests.post", side_effect=responses), \
                patch("app.services.gemini_service.time.sleep") as sleep:
            assert gemini_service.generate_text("x") == "после паузы"
        sleep.assert_called_once_with(5)

    def test_call_gemini(self):
        """call_gemini is the single-prompt shortcut."""
        with patch("app.services.gemini_service.requests.post", return_value=_response(_candidate("ok"))):
            assert gemini_service.call_gemini("x") == "ok"
