from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema import validate
from pydantic import ValidationError

from content_studio_cli.exceptions import ResponseParseError
from content_studio_cli.models.brand import BrandTokens, ContentFormat
from content_studio_cli.models.content import SLIDE_COUNT_BY_FORMAT, Slide, Trend
from content_studio_cli.providers.base import TextGenerator
from content_studio_cli.settings import StudioSettings

from .styles import get_style_preset

logger = logging.getLogger(__name__)

COPY_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["title", "caption", "slides"],
    "properties": {
        "title": {"type": "string"},
        "caption": {"type": "string"},
        "hashtags": {"type": "array", "items": {"type": "string"}},
        "slides": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["headline"],
                "properties": {
                    "role": {"type": "string"},
                    "template": {"type": ["string", "null"]},
                    "headline": {"type": "string"},
                    "body": {"type": ["string", "null"]},
                    "bullets": {"type": ["array", "null"], "items": {"type": "string"}},
                    "speakerNotes": {"type": ["string", "null"]},
                    "illustrationPrompt": {"type": ["string", "null"]},
                    "imagePrompt": {"type": ["string", "null"]},
                },
            },
        },
    },
}


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the JSON object embedded in *text*, from the first ``{`` to the last ``}``."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ResponseParseError("No JSON object found in text response")
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Malformed JSON in text response: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise ResponseParseError("Text response JSON is not an object")
    return parsed


@dataclass(slots=True)
class CopyRequest:
    trend: Trend
    content_format: ContentFormat = "carousel"
    content_style: str = "news"
    tone: str | None = None
    target_audience: str | None = None
    language: str | None = None
    tokens: BrandTokens | None = None
    example_descriptions: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CopyDraft:
    title: str
    caption: str
    hashtags: list[str]
    slides: list[Slide]


def _normalize_hashtag(tag: str) -> str:
    tag = tag.strip().replace(" ", "")
    return tag if tag.startswith("#") else f"#{tag}"


def brand_context_block(tokens: BrandTokens, example_descriptions: list[str]) -> str:
    lines = [
        "BRAND CONTEXT:",
        f"- Brand: {tokens.name}",
        f"- Tone: {tokens.visual_tone}",
    ]
    if tokens.palette:
        lines.append("- Palette: " + ", ".join(color.hex for color in tokens.palette))
    lines.append(f"- Fonts: {tokens.fonts.headings} / {tokens.fonts.body}")
    if tokens.do_rules:
        lines.append(f"- Do: {tokens.do_rules}")
    if tokens.dont_rules:
        lines.append(f"- Don't: {tokens.dont_rules}")
    for description in example_descriptions[:5]:
        lines.append(f"- Example post: {description}")
    return "\n".join(lines)


class CopyGenerator:
    def __init__(self, text_generator: TextGenerator, settings: StudioSettings | None = None) -> None:
        self.text_generator = text_generator
        self.settings = settings or StudioSettings()

    def build_system_prompt(self, request: CopyRequest) -> str:
        preset = get_style_preset(request.content_style)
        language = request.language or self.settings.language
        parts = [
            "You are a senior social media copywriter.",
            preset.system_addition,
            f"Write everything in {language}.",
            "Answer with a single JSON object only, no markdown.",
            "Each slide needs: role (cover|context|insight|bullets|closing|cta), headline, body, "
            "optional bullets, optional speakerNotes, and illustrationPrompt.",
            "illustrationPrompt describes a background image and must never ask for rendered text.",
        ]
        if not preset.allow_cta:
            parts.append("Never include a call to action.")
        if request.tokens is not None:
            parts.append(brand_context_block(request.tokens, request.example_descriptions))
        return "\n".join(parts)

    def build_user_prompt(self, request: CopyRequest) -> str:
        preset = get_style_preset(request.content_style)
        slide_count = SLIDE_COUNT_BY_FORMAT[request.content_format]
        trend = request.trend
        parts = [
            f"Trend: {trend.title}",
            f"Description: {trend.description or '-'}",
            f"Theme: {trend.theme}",
        ]
        if trend.keywords:
            parts.append("Keywords: " + ", ".join(trend.keywords))
        if request.tone:
            parts.append(f"Tone: {request.tone}")
        if request.target_audience:
            parts.append(f"Audience: {request.target_audience}")
        parts.append(preset.user_guide)
        parts.append(preset.slide_guide)
        parts.append(
            f"Create a {request.content_format} with exactly {slide_count} slides. "
            'Return {"title", "caption", "hashtags", "slides"}.'
        )
        return "\n".join(parts)

    def generate(self, request: CopyRequest) -> CopyDraft:
        raw = self.text_generator.complete(
            self.build_system_prompt(request),
            self.build_user_prompt(request),
            self.settings.text_model,
        )
        data = extract_json_object(raw)
        try:
            validate(instance=data, schema=COPY_RESPONSE_SCHEMA)
        except JsonSchemaValidationError as exc:
            raise ResponseParseError(f"Copy response failed validation: {exc.message}") from exc

        expected = SLIDE_COUNT_BY_FORMAT[request.content_format]
        raw_slides = data["slides"]
        if len(raw_slides) < expected:
            raise ResponseParseError(f"Expected {expected} slides for {request.content_format}, got {len(raw_slides)}")
        if len(raw_slides) > expected:
            logger.info("Copy returned %d slides, keeping the first %d", len(raw_slides), expected)

        try:
            slides = [Slide.model_validate(item) for item in raw_slides[:expected]]
        except ValidationError as exc:
            raise ResponseParseError(f"Invalid slide in copy response: {exc.errors()[0]['msg']}") from exc

        # the copy's template suggestion is kept as a hint; the resolver owns ``template``
        slides = [
            slide.model_copy(update={"template_hint": slide.template_hint or slide.template, "template": None})
            for slide in slides
        ]
        return CopyDraft(
            title=str(data["title"]),
            caption=str(data["caption"]),
            hashtags=[_normalize_hashtag(tag) for tag in data.get("hashtags", []) if tag.strip()],
            slides=slides,
        )
