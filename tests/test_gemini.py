"""Tests for Gemini error classification."""

import pytest
from google.genai import errors

from autoshorts_core.ai.gemini import GeminiClient
from autoshorts_core.ai.keys import ApiKey
from autoshorts_core.errors import (
    AnalysisRequestError,
    CredentialRejected,
    QuotaExceeded,
    TransientAnalysisError,
)


KEY = ApiKey("key-1", "secret")


def _error(cls, code, status, message):
    return cls(code, {"error": {"code": code, "status": status, "message": message}})


@pytest.mark.parametrize(
    "error,expected",
    [
        (_error(errors.ClientError, 429, "RESOURCE_EXHAUSTED", "Resource has been exhausted"), QuotaExceeded),
        (_error(errors.ClientError, 403, "PERMISSION_DENIED", "Permission denied"), CredentialRejected),
        (_error(errors.ClientError, 400, "INVALID_ARGUMENT", "API key not valid. Please pass a valid API key."),
         CredentialRejected),
        (_error(errors.ServerError, 503, "UNAVAILABLE", "The model is overloaded"), TransientAnalysisError),
        (_error(errors.ClientError, 400, "INVALID_ARGUMENT", "Request payload size exceeds the limit"),
         AnalysisRequestError),
    ],
)
def test_api_errors_are_classified(error, expected):
    mapped = GeminiClient._map_api_error(error, KEY)
    assert type(mapped) is expected
    assert "secret" not in str(mapped)


def test_default_model():
    assert GeminiClient().get_model() == "gemini-2.5-flash"
    assert GeminiClient(model="gemini-2.5-pro").get_model() == "gemini-2.5-pro"


def test_prompt_mentions_bounds():
    prompt = GeminiClient().format_moments_prompt(15, 60)
    assert "15 seconds to 60 seconds" in prompt
    assert "Cinematic" in prompt
