from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from content_studio_cli.exceptions import InsufficientDataError
from content_studio_cli.models.brand import BrandExample, BrandRecord, TemplateSet
from content_studio_cli.models.content import GeneratedContent, Slide
from content_studio_cli.storage.datastore import InMemoryDataStore, JsonFileDataStore


def _template_set(template_set_id: str, category_id: str | None = "news", day: int = 1) -> TemplateSet:
    return TemplateSet(
        id=template_set_id,
        brand_id="acme",
        category_id=category_id,
        created_at=datetime(2026, 1, day, tzinfo=UTC),
    )


def test_activating_a_set_archives_siblings_in_same_category() -> None:
    store = InMemoryDataStore(
        template_sets=[_template_set("old"), _template_set("other_category", category_id="tips")]
    )
    store.save_template_set(_template_set("new", day=2).model_copy(update={"status": "archived"}))

    activated = store.activate_template_set("new")

    assert activated.status == "active"
    assert store.get_template_set("old").status == "archived"
    assert store.get_template_set("other_category").status == "active"
    assert store.get_active_template_set("acme", "news").id == "new"


def test_activate_unknown_set_raises() -> None:
    with pytest.raises(InsufficientDataError):
        InMemoryDataStore().activate_template_set("missing")


def test_active_template_set_is_per_category() -> None:
    store = InMemoryDataStore(template_sets=[_template_set("news_set"), _template_set("default_set", category_id=None)])

    assert store.get_active_template_set("acme", "news").id == "news_set"
    assert store.get_active_template_set("acme").id == "default_set"
    assert store.get_active_template_set("acme", "sports") is None


def test_examples_mix_naive_and_aware_timestamps() -> None:
    store = InMemoryDataStore(
        brand_examples=[
            BrandExample(id="aware", brand_id="acme", created_at=datetime(2026, 1, 2, tzinfo=UTC)),
            BrandExample(id="naive", brand_id="acme", created_at=datetime(2026, 1, 1)),
        ]
    )

    assert [example.id for example in store.list_brand_examples("acme")] == ["aware", "naive"]


def test_upsert_slide_media_is_idempotent() -> None:
    store = InMemoryDataStore(contents=[GeneratedContent(id="c1", slides=[Slide(headline="a")])])

    store.upsert_slide_media("c1", 0, image_url="file:///a.png")
    updated = store.upsert_slide_media("c1", 0, image_url="file:///a.png")

    assert updated.slides[0].image_url == "file:///a.png"
    assert updated.slides[0].render_mode == "legacy_image"


def test_upsert_slide_media_unknown_targets() -> None:
    store = InMemoryDataStore(contents=[GeneratedContent(id="c1", slides=[Slide(headline="a")])])

    with pytest.raises(InsufficientDataError):
        store.upsert_slide_media("missing", 0, image_url="x")
    with pytest.raises(InsufficientDataError):
        store.upsert_slide_media("c1", 3, image_url="x")


def test_json_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "db" / "studio.json"
    store = JsonFileDataStore(path)
    store.import_records(
        brands=[BrandRecord(id="acme", name="Acme", palette=["#ffffff"])],
        brand_examples=[BrandExample(id="ex1", brand_id="acme", created_at=datetime(2026, 1, 1, tzinfo=UTC))],
    )
    store.save_content(GeneratedContent(id="c1", title="Saved", slides=[Slide(role="cover", headline="h")]))

    reloaded = JsonFileDataStore(path)

    assert reloaded.get_brand("acme").palette == ["#ffffff"]
    assert [example.id for example in reloaded.list_brand_examples("acme")] == ["ex1"]
    assert reloaded.get_content("c1").title == "Saved"
    assert set(json.loads(path.read_text(encoding="utf-8"))) == {
        "brands",
        "brand_examples",
        "template_sets",
        "style_gallery",
        "contents",
    }
