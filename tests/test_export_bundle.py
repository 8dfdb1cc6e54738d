from __future__ import annotations

import logging
import zipfile
from pathlib import Path

import pytest

from content_studio_cli.models.brand import BrandTokens
from content_studio_cli.models.content import GeneratedContent, Slide
from content_studio_cli.output.bundle import CAPTIONS_FILENAME, bundle_filename, captions_text, write_bundle


def _content(**kwargs) -> GeneratedContent:
    slides = [
        Slide(role="cover", headline="Cover", template="wave_cover"),
        Slide(role="bullets", headline="List", bullets=["alpha", "beta"], template="wave_bullets"),
        Slide(role="closing", headline="Bye", body="Follow us", template="retired_template"),
    ]
    defaults = {
        "id": "c1",
        "title": "Hello world: AI!",
        "caption": "Caption text",
        "hashtags": ["#ai", "#news"],
        "slides": slides,
        "content_type": "carousel",
        "brand_snapshot": BrandTokens(name="Acme"),
    }
    defaults.update(kwargs)
    return GeneratedContent(**defaults)


def test_bundle_filename_is_sanitized_and_truncated() -> None:
    assert bundle_filename("Hello world: AI!") == "Hello_world__AI__content.zip"
    assert bundle_filename("x" * 50) == "x" * 30 + "_content.zip"
    assert bundle_filename("") == "content_content.zip"


def test_captions_text_lists_every_slide() -> None:
    text = captions_text(_content())

    assert "Brand: Acme" in text
    assert "#ai #news" in text
    assert "--- Slide 2 (bullets) ---" in text
    assert "- beta" in text
    assert "Follow us" in text


def test_write_bundle_contains_slides_and_captions(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        bundle = write_bundle(_content(), tmp_path / "exports")

    assert bundle == tmp_path / "exports" / "Hello_world__AI__content.zip"
    with zipfile.ZipFile(bundle) as archive:
        assert sorted(archive.namelist()) == sorted(["slide_1.png", "slide_2.png", "slide_3.png", CAPTIONS_FILENAME])
        assert archive.read(CAPTIONS_FILENAME).decode("utf-8").startswith("Title: Hello world: AI!")
        assert archive.read("slide_1.png")[:8] == b"\x89PNG\r\n\x1a\n"
    assert "retired_template" in caplog.text
