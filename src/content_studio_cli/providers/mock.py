from __future__ import annotations

import hashlib
import io
import json
import re
import threading
from collections.abc import Sequence

from PIL import Image, ImageDraw

from .base import ImageGenerator, TextGenerator
from .data_url import encode_data_url

_SLIDE_COUNT_PATTERN = re.compile(r"exactly (\d+) slides?")
_MOCK_ROLES = ["cover", "context", "insight", "bullets", "closing"]


class MockImageProvider(ImageGenerator):
    """Deterministic offline image backend. Records every call."""

    def __init__(self, size: tuple[int, int] = (270, 338)) -> None:
        self.size = size
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def generate_image(self, prompt: str, reference_urls: Sequence[str], model: str) -> str | None:
        with self._lock:
            self.calls.append({"prompt": prompt, "reference_urls": list(reference_urls), "model": model})

        width, height = self.size
        digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()
        color_a = tuple(int(digest[i : i + 2], 16) for i in (0, 2, 4))
        color_b = tuple(int(digest[i : i + 2], 16) for i in (6, 8, 10))

        image = Image.new("RGB", (width, height), color_a)
        draw = ImageDraw.Draw(image)
        for y in range(height):
            blend = y / max(height - 1, 1)
            r = int(color_a[0] * (1 - blend) + color_b[0] * blend)
            g = int(color_a[1] * (1 - blend) + color_b[1] * blend)
            b = int(color_a[2] * (1 - blend) + color_b[2] * blend)
            draw.line([(0, y), (width, y)], fill=(r, g, b))

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return encode_data_url(buffer.getvalue(), "image/png")


class MockTextProvider(TextGenerator):
    """Returns well-formed copy JSON sized to the slide count requested in the prompt."""

    def __init__(self) -> None:
        self.calls: list[dict] = []

    def complete(self, system_prompt: str, user_prompt: str, model: str) -> str:
        self.calls.append({"system_prompt": system_prompt, "user_prompt": user_prompt, "model": model})
        match = _SLIDE_COUNT_PATTERN.search(user_prompt)
        slide_count = int(match.group(1)) if match else 1

        slides = []
        for index in range(slide_count):
            role = _MOCK_ROLES[min(index, len(_MOCK_ROLES) - 1)] if slide_count > 1 else "cover"
            if slide_count > 1 and index == slide_count - 1:
                role = "closing"
            slides.append(
                {
                    "role": role,
                    "headline": f"Mock headline {index + 1}",
                    "body": f"Mock body text for slide {index + 1}.",
                    "bullets": ["First point", "Second point"] if role == "bullets" else None,
                    "illustrationPrompt": f"Abstract editorial background {index + 1}, no text",
                }
            )

        payload = {
            "title": "Mock content",
            "caption": "Mock caption for offline runs.",
            "hashtags": ["#mock", "#offline"],
            "slides": slides,
        }
        return "Here is the content:\n" + json.dumps(payload) + "\n"
