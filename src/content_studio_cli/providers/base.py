from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence


class ImageGenerator(ABC):
    """Multimodal image collaborator: prompt plus reference images in, data URL out."""

    @abstractmethod
    def generate_image(self, prompt: str, reference_urls: Sequence[str], model: str) -> str | None:
        """Return the generated image as a data URL, or ``None`` when the model produced none."""
        raise NotImplementedError


class TextGenerator(ABC):
    @abstractmethod
    def complete(self, system_prompt: str, user_prompt: str, model: str) -> str:
        """Return the raw message content of a chat completion."""
        raise NotImplementedError
