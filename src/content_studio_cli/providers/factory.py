from __future__ import annotations

from content_studio_cli.settings import StudioSettings

from .base import ImageGenerator, TextGenerator
from .gateway import GatewayClient
from .gemini_developer import GeminiDeveloperProvider
from .mock import MockImageProvider, MockTextProvider


def create_image_generator(provider: str, settings: StudioSettings) -> ImageGenerator:
    if provider == "mock":
        return MockImageProvider()
    if provider == "gateway":
        return GatewayClient(settings.gateway_url, timeout=settings.request_timeout_seconds)
    if provider == "gemini":
        return GeminiDeveloperProvider()
    raise ValueError(f"Unknown image provider: {provider}")


def create_text_generator(provider: str, settings: StudioSettings) -> TextGenerator:
    if provider == "mock":
        return MockTextProvider()
    if provider in {"gateway", "gemini"}:
        # copy always goes through the gateway
        return GatewayClient(settings.gateway_url, timeout=settings.request_timeout_seconds)
    raise ValueError(f"Unknown text provider: {provider}")
