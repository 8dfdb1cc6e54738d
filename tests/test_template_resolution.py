from content_studio_cli.models.brand import LayoutParams, StyleGuide, TemplateSet
from content_studio_cli.models.content import Slide
from content_studio_cli.templates.resolver import (
    GENERIC_TEMPLATE_ID,
    PARAMETERIZED_TEMPLATE_ID,
    ai_step_for,
    apply_plan,
    layout_params_for,
    normalize_slide_roles,
    plan_slides,
    resolve_template_id,
)


def _slides(*roles: str) -> list[Slide]:
    return [Slide(role=role, headline=f"Slide {index}") for index, role in enumerate(roles)]


def _template_set(**kwargs) -> TemplateSet:
    return TemplateSet(id="ts1", brand_id="acme", **kwargs)


def test_free_mode_always_uses_generic_template() -> None:
    template_set = _template_set(templates_by_role={"cover": "brand_cover"})
    for role in ("cover", "context", "bullets", "closing"):
        assert resolve_template_id("free", "carousel", role, template_set) == GENERIC_TEMPLATE_ID


def test_hard_coded_table_without_brand_templates() -> None:
    assert resolve_template_id("brand_guided", "carousel", "cover") == "wave_cover"
    assert resolve_template_id("brand_guided", "carousel", "context") == "wave_text_card"
    assert resolve_template_id("brand_guided", "carousel", "bullets") == "wave_bullets"
    assert resolve_template_id("brand_guided", "carousel", "closing") == "wave_closing"


def test_story_cover_has_its_own_template() -> None:
    assert resolve_template_id("brand_strict", "story", "cover") == "story_cover"
    assert resolve_template_id("brand_strict", "post", "cover") == "wave_cover"


def test_template_set_role_group_keys() -> None:
    template_set = _template_set(templates_by_role={"cover": "X", "content": "Y", "closing": "Z"})

    assert resolve_template_id("brand_strict", "carousel", "insight", template_set) == "Y"
    assert resolve_template_id("brand_strict", "carousel", "cta", template_set) == "Z"


def test_layout_params_select_parameterized_template() -> None:
    params = LayoutParams.model_validate({"shape": {"type": "diagonal"}})
    template_set = _template_set(layout_params={"content": params})

    assert resolve_template_id("brand_guided", "carousel", "bullets", template_set) == PARAMETERIZED_TEMPLATE_ID
    assert layout_params_for(template_set, "bullets") == params
    assert layout_params_for(None, "bullets") is None


def test_style_guide_mapping_applies_before_table() -> None:
    guide = StyleGuide(role_to_template={"cover": "wave_closing"})

    assert resolve_template_id("brand_guided", "carousel", "cover", style_guide=guide) == "wave_closing"
    assert resolve_template_id("brand_guided", "carousel", "context", style_guide=guide) == "wave_text_card"


def test_normalize_roles_frames_the_carousel() -> None:
    slides = normalize_slide_roles(_slides("context", "context", "insight", "bullets", "context"), "carousel")

    assert [slide.role for slide in slides] == ["cover", "context", "insight", "bullets", "closing"]


def test_normalize_roles_respects_locks_and_cta() -> None:
    slides = _slides("insight", "context", "cta")
    slides[0] = slides[0].model_copy(update={"role_locked": True})

    normalized = normalize_slide_roles(slides, "carousel")

    assert [slide.role for slide in normalized] == ["insight", "context", "cta"]


def test_single_slide_post_becomes_cover() -> None:
    assert [slide.role for slide in normalize_slide_roles(_slides("context"), "post")] == ["cover"]


def test_plan_is_deterministic() -> None:
    slides = _slides("cover", "context", "insight", "bullets", "closing")
    template_set = _template_set(templates_by_role={"cover": "X", "content": "Y", "closing": "Z"})

    first = plan_slides(slides, "brand_strict", "carousel", template_set)
    second = plan_slides(slides, "brand_strict", "carousel", template_set)

    assert first == second
    assert [plan.template_id for plan in first] == ["X", "Y", "Y", "Y", "Z"]
    assert {plan.ai_step for plan in first} == {"none"}


def test_apply_plan_sets_templates() -> None:
    slides = _slides("cover", "context")
    plans = plan_slides(slides, "free", "carousel")

    resolved = apply_plan(slides, plans)

    assert [slide.template for slide in resolved] == [GENERIC_TEMPLATE_ID, GENERIC_TEMPLATE_ID]
    assert slides[0].template is None


def test_ai_step_by_mode() -> None:
    assert ai_step_for("brand_strict") == "none"
    assert ai_step_for("brand_guided") == "background"
    assert ai_step_for("free") == "unconstrained"
