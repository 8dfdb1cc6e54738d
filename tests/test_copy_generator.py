from __future__ import annotations

import json

import pytest

from content_studio_cli.copywriting.generator import CopyGenerator, CopyRequest, extract_json_object
from content_studio_cli.exceptions import ResponseParseError
from content_studio_cli.models.brand import BrandTokens, PaletteColor
from content_studio_cli.models.content import Trend
from content_studio_cli.providers.base import TextGenerator
from content_studio_cli.providers.mock import MockTextProvider


class CannedTextGenerator(TextGenerator):
    def __init__(self, response: str) -> None:
        self.response = response
        self.prompts: list[tuple[str, str]] = []

    def complete(self, system_prompt: str, user_prompt: str, model: str) -> str:
        self.prompts.append((system_prompt, user_prompt))
        return self.response


def _payload(slide_count: int, **slide_extra) -> str:
    slides = [{"role": "context", "headline": f"H{index}", "body": f"B{index}", **slide_extra} for index in range(slide_count)]
    return json.dumps({"title": "T", "caption": "C", "hashtags": ["ai", "#tech news"], "slides": slides})


def _request(content_format: str = "carousel", **kwargs) -> CopyRequest:
    return CopyRequest(trend=Trend(title="AI regulation", keywords=["ai", "law"]), content_format=content_format, **kwargs)


def test_extract_json_object_ignores_surrounding_prose() -> None:
    text = 'Sure! Here it is:\n```json\n{"title": "x", "nested": {"a": 1}}\n```\nEnjoy.'

    assert extract_json_object(text) == {"title": "x", "nested": {"a": 1}}


@pytest.mark.parametrize("text", ["no json here", "{broken json", "[1, 2]"])
def test_extract_json_object_errors(text: str) -> None:
    with pytest.raises(ResponseParseError):
        extract_json_object(text)


def test_user_prompt_states_exact_slide_count() -> None:
    generator = CopyGenerator(MockTextProvider())

    assert "exactly 5 slides" in generator.build_user_prompt(_request("carousel"))
    assert "exactly 1 slides" in generator.build_user_prompt(_request("story"))


def test_mock_copy_has_requested_slide_count() -> None:
    draft = CopyGenerator(MockTextProvider()).generate(_request("carousel"))

    assert len(draft.slides) == 5
    assert draft.slides[0].role == "cover"
    assert draft.slides[-1].role == "closing"
    assert draft.hashtags == ["#mock", "#offline"]


def test_too_few_slides_is_a_parse_error() -> None:
    generator = CopyGenerator(CannedTextGenerator(_payload(3)))

    with pytest.raises(ResponseParseError, match="Expected 5 slides"):
        generator.generate(_request("carousel"))


def test_extra_slides_are_truncated() -> None:
    draft = CopyGenerator(CannedTextGenerator(_payload(4))).generate(_request("post"))

    assert len(draft.slides) == 1
    assert draft.slides[0].headline == "H0"


def test_schema_violation_is_a_parse_error() -> None:
    generator = CopyGenerator(CannedTextGenerator(json.dumps({"title": "T", "slides": []})))

    with pytest.raises(ResponseParseError):
        generator.generate(_request("post"))


def test_template_suggestion_becomes_hint_and_hashtags_normalized() -> None:
    draft = CopyGenerator(CannedTextGenerator(_payload(1, template="wave_cover"))).generate(_request("post"))

    assert draft.slides[0].template is None
    assert draft.slides[0].template_hint == "wave_cover"
    assert draft.hashtags == ["#ai", "#technews"]


def test_quote_style_forbids_call_to_action() -> None:
    generator = CopyGenerator(MockTextProvider())

    assert "Never include a call to action." in generator.build_system_prompt(_request(content_style="quote"))
    assert "Never include a call to action." not in generator.build_system_prompt(_request(content_style="tip"))


def test_brand_context_reaches_system_prompt() -> None:
    tokens = BrandTokens(
        name="Acme",
        palette=(PaletteColor(name="sky", hex="#a4d3eb"),),
        visual_tone="playful",
        do_rules="use short sentences",
    )
    text = CannedTextGenerator(_payload(1))

    CopyGenerator(text).generate(
        _request("post", tokens=tokens, example_descriptions=["Launch post with blue waves"], language="en-US")
    )

    system_prompt = text.prompts[0][0]
    assert "BRAND CONTEXT:" in system_prompt
    assert "- Brand: Acme" in system_prompt
    assert "#a4d3eb" in system_prompt
    assert "Launch post with blue waves" in system_prompt
    assert "Write everything in en-US." in system_prompt
