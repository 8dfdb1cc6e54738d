"""Direct Gemini backend, exercised against a stubbed google-genai SDK."""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from content_studio_cli.exceptions import ConfigurationError, ProviderGenerationError, QuotaExceededError
from content_studio_cli.providers.data_url import decode_data_url, encode_data_url
from content_studio_cli.providers.gemini_developer import GeminiDeveloperProvider


class FakeAPIError(Exception):
    def __init__(self, code: int) -> None:
        super().__init__(f"api error {code}")
        self.code = code


def _sdk(response: object | None = None, error: Exception | None = None) -> tuple[dict, MagicMock]:
    genai = MagicMock()
    genai.errors.APIError = FakeAPIError
    client = genai.Client.return_value
    if error is not None:
        client.models.generate_content.side_effect = error
    else:
        client.models.generate_content.return_value = response
    google = MagicMock()
    google.genai = genai
    modules = {
        "google": google,
        "google.genai": genai,
        "google.genai.errors": genai.errors,
        "google.genai.types": genai.types,
    }
    return modules, client


def _provider(monkeypatch: pytest.MonkeyPatch, modules: dict) -> GeminiDeveloperProvider:
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    with patch.dict("sys.modules", modules):
        return GeminiDeveloperProvider()


def test_inline_image_becomes_data_url(monkeypatch: pytest.MonkeyPatch) -> None:
    part = SimpleNamespace(inline_data=SimpleNamespace(data=b"jpeg-bytes", mime_type="image/jpeg"))
    modules, client = _sdk(response=SimpleNamespace(parts=[SimpleNamespace(inline_data=None), part]))
    provider = _provider(monkeypatch, modules)

    result = provider.generate_image("prompt", [encode_data_url(b"ref", "image/png")], "google/gemini-2.5-flash-image")

    assert result is not None
    assert decode_data_url(result) == (b"jpeg-bytes", "image/jpeg")
    assert client.models.generate_content.call_args.kwargs["model"] == "gemini-2.5-flash-image"
    modules["google.genai.types"].Part.from_bytes.assert_called_once_with(data=b"ref", mime_type="image/png")


def test_response_without_image_returns_none(monkeypatch: pytest.MonkeyPatch) -> None:
    modules, _ = _sdk(response=SimpleNamespace(parts=[]))

    assert _provider(monkeypatch, modules).generate_image("prompt", [], "gemini-2.5-flash-image") is None


@pytest.mark.parametrize(("code", "expected"), [(402, QuotaExceededError), (429, ProviderGenerationError)])
def test_api_errors_map_to_provider_errors(monkeypatch: pytest.MonkeyPatch, code: int, expected: type) -> None:
    modules, _ = _sdk(error=FakeAPIError(code))
    provider = _provider(monkeypatch, modules)

    with pytest.raises(expected) as exc_info:
        provider.generate_image("prompt", [], "gemini-2.5-flash-image")
    assert exc_info.value.status == code


def test_missing_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
        GeminiDeveloperProvider()


def test_missing_sdk_is_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")

    with patch.dict("sys.modules", {"google": None, "google.genai": None}):
        with pytest.raises(ConfigurationError, match="google-genai"):
            GeminiDeveloperProvider()
