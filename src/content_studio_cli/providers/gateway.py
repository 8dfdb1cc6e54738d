"""Chat-completions gateway client used for both copy and image generation.

Request shape for images::

    {"model": ..., "messages": [{"role": "user", "content": [parts...]}],
     "modalities": ["image", "text"]}

The image comes back at ``choices[0].message.images[0].image_url.url``.  A 200
without that field means the model produced no image, which is not an error.
"""

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
    ResponseParseError,
    TransientProviderError,
)

from .base import ImageGenerator, TextGenerator

logger = logging.getLogger(__name__)


def extract_image_url(payload: dict[str, Any]) -> str | None:
    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message") or {}
    images = message.get("images") or []
    if not images or not isinstance(images[0], dict):
        return None
    image_url = images[0].get("image_url") or {}
    url = image_url.get("url") if isinstance(image_url, dict) else None
    return url or None


def extract_message_content(payload: dict[str, Any]) -> str:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ResponseParseError("Text response did not contain choices[0].message.content") from exc
    if not isinstance(content, str) or not content.strip():
        raise ResponseParseError("Text response message content is empty")
    return content


class GatewayClient(ImageGenerator, TextGenerator):
    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        api_key_env: str = "AI_GATEWAY_API_KEY",
        timeout: float = 120.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self.api_key = api_key or os.getenv(api_key_env)
        if not self.api_key:
            raise ConfigurationError(f"Missing API key environment variable: {api_key_env}")

        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.post(self.url, json=body)
        except httpx.TransportError as exc:
            raise TransientProviderError(f"Gateway request failed: {exc}") from exc

        status = response.status_code
        if status == 402:
            raise QuotaExceededError()
        if not response.is_success:
            raise ProviderGenerationError(
                f"Gateway returned {status} for model '{body.get('model')}': {response.text[:200]}",
                status=status,
            )

        if not response.content.strip():
            raise TransientProviderError("Gateway returned an empty body", status=status)
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransientProviderError("Gateway returned an unparsable body", status=status) from exc
        if not isinstance(payload, dict):
            raise TransientProviderError("Gateway returned a non-object body", status=status)
        return payload

    def generate_image(self, prompt: str, reference_urls: Sequence[str], model: str) -> str | None:
        parts: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        parts.extend({"type": "image_url", "image_url": {"url": url}} for url in reference_urls)

        payload = self._post(
            {
                "model": model,
                "messages": [{"role": "user", "content": parts}],
                "modalities": ["image", "text"],
            }
        )
        image_url = extract_image_url(payload)
        if image_url is None:
            logger.warning("Model %s returned no image", model)
        return image_url

    def complete(self, system_prompt: str, user_prompt: str, model: str) -> str:
        payload = self._post(
            {
                "model": model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            }
        )
        return extract_message_content(payload)
