from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import Any

import httpx

from content_studio_cli.exceptions import (
    ConfigurationError,
    ProviderGenerationError,
    QuotaExceededError,
    TransientProviderError,
)

from .base import ImageGenerator
from .data_url import decode_data_url, encode_data_url

logger = logging.getLogger(__name__)


def _strip_gateway_prefix(model: str) -> str:
    # gateway ids look like "google/gemini-2.5-flash-image"
    return model.split("/", 1)[1] if model.startswith("google/") else model


class GeminiDeveloperProvider(ImageGenerator):
    """Direct Gemini Developer API backend, an alternative to the HTTP gateway."""

    def __init__(self, api_key_env: str = "GEMINI_API_KEY", http_client: httpx.Client | None = None):
        self.api_key = os.getenv(api_key_env)
        if not self.api_key:
            raise ConfigurationError(f"Missing API key environment variable: {api_key_env}")

        try:
            from google import genai  # type: ignore
            from google.genai import errors, types  # type: ignore
        except ImportError as exc:
            raise ConfigurationError("Direct Gemini mode requires dependency: google-genai") from exc

        self._client = genai.Client(api_key=self.api_key)
        self._types = types
        self._errors = errors
        self._http = http_client or httpx.Client(timeout=30.0)

    def _reference_part(self, url: str) -> Any:
        if url.startswith("data:"):
            data, mime_type = decode_data_url(url)
        else:
            response = self._http.get(url)
            response.raise_for_status()
            data = response.content
            mime_type = response.headers.get("content-type", "image/png").split(";")[0]
        return self._types.Part.from_bytes(data=data, mime_type=mime_type)

    def _map_api_error(self, exc: Exception, model: str) -> ProviderGenerationError:
        code = getattr(exc, "code", None)
        if code == 402:
            return QuotaExceededError()
        return ProviderGenerationError(f"Gemini Developer API call failed for model '{model}': {exc}", status=code)

    def generate_image(self, prompt: str, reference_urls: Sequence[str], model: str) -> str | None:
        model_name = _strip_gateway_prefix(model)
        try:
            contents: list[Any] = [prompt, *(self._reference_part(url) for url in reference_urls)]
        except httpx.HTTPError as exc:
            raise TransientProviderError(f"Could not fetch reference image: {exc}") from exc

        try:
            response = self._client.models.generate_content(
                model=model_name,
                contents=contents,
                config=self._types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
            )
        except self._errors.APIError as exc:
            raise self._map_api_error(exc, model_name) from exc

        parts = getattr(response, "parts", None) or []
        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            if inline_data is not None and getattr(inline_data, "data", None):
                return encode_data_url(inline_data.data, inline_data.mime_type or "image/png")

        logger.warning("Gemini model %s returned no image data", model_name)
        return None
