"""Tests for the analysis webhook client (HTTP replaced by a fake session)."""

import pytest
import requests

from keyword_crawler.ai_client import AIAnalysisClient, AIClientConfig
from keyword_crawler.exceptions import AIServiceError


class FakeResponse:
    def __init__(self, status_code=200, json_body=None, text=""):
        self.status_code = status_code
        self._json = json_body
        self.text = text
        self.reason = "OK" if status_code < 400 else "Error"
        self.content = text.encode("utf-8")

    def json(self):
        if self._json is None:
            raise ValueError("not json")
        return self._json


class FakeHTTPSession:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({'url': url, 'json': json, 'timeout': timeout})
        if self.error is not None:
            raise self.error
        return self.response


CONFIG = AIClientConfig(webhook_url="https://ai.example.test/hook", timeout_seconds=220)


class TestAIAnalysisClient:

    def test_headers_and_timeout(self):
        session = FakeHTTPSession(FakeResponse(json_body={"keywords": []}))
        client = AIAnalysisClient(CONFIG, session=session)
        client.submit({"totalPages": 1})

        assert session.headers["User-Agent"] == "RankSeo-Analyzer/1.0"
        assert session.headers["Content-Type"] == "application/json"
        assert session.calls[0]["timeout"] == 220
        assert session.calls[0]["url"] == "https://ai.example.test/hook"

    def test_json_body_decoded(self):
        session = FakeHTTPSession(FakeResponse(json_body=[{"output": "{}"}]))
        assert AIAnalysisClient(CONFIG, session=session).submit({}) == [{"output": "{}"}]

    def test_text_body_returned_raw(self):
        session = FakeHTTPSession(FakeResponse(text="```json\n{}\n```"))
        assert AIAnalysisClient(CONFIG, session=session).submit({}) == "```json\n{}\n```"

    def test_non_2xx_raises(self):
        session = FakeHTTPSession(FakeResponse(status_code=502, text="Bad Gateway"))
        with pytest.raises(AIServiceError) as exc_info:
            AIAnalysisClient(CONFIG, session=session).submit({})
        assert exc_info.value.status_code == 502
        assert "502" in str(exc_info.value)

    def test_timeout_raises(self):
        session = FakeHTTPSession(error=requests.Timeout("read timed out"))
        with pytest.raises(AIServiceError, match="timed out"):
            AIAnalysisClient(CONFIG, session=session).submit({})

    def test_connection_error_raises(self):
        session = FakeHTTPSession(error=requests.ConnectionError("connection refused"))
        with pytest.raises(AIServiceError):
            AIAnalysisClient(CONFIG, session=session).submit({})

    def test_unconfigured_client_raises_without_request(self):
        session = FakeHTTPSession(FakeResponse(json_body={}))
        with pytest.raises(AIServiceError):
            AIAnalysisClient(AIClientConfig(), session=session).submit({})
        assert session.calls == []
