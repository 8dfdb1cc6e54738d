from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from content_studio_cli.models.brand import ContentFormat, LayoutParams, StyleGuide, TemplateSet
from content_studio_cli.models.content import Slide, VisualMode

AiStep = Literal["none", "background", "unconstrained"]

GENERIC_TEMPLATE_ID = "generic_free"
PARAMETERIZED_TEMPLATE_ID = "parameterized"
STORY_COVER_TEMPLATE_ID = "story_cover"
DEFAULT_TEMPLATE_ID = "wave_text_card"

ROLE_TEMPLATE_TABLE: dict[str, str] = {
    "cover": "wave_cover",
    "context": "wave_text_card",
    "insight": "wave_bullets",
    "bullets": "wave_bullets",
    "closing": "wave_closing",
    "cta": "wave_closing",
}

# Keys a template set may use for a whole family of roles.
_ROLE_GROUPS: dict[str, tuple[str, ...]] = {
    "cover": (),
    "context": ("content",),
    "insight": ("content",),
    "bullets": ("content",),
    "closing": ("cta",),
    "cta": ("closing",),
}


@dataclass(slots=True, frozen=True)
class SlidePlan:
    index: int
    role: str
    template_id: str
    ai_step: AiStep


def role_lookup_keys(role: str) -> tuple[str, ...]:
    return (role, *_ROLE_GROUPS.get(role, ("content",)))


def ai_step_for(visual_mode: VisualMode) -> AiStep:
    if visual_mode == "free":
        return "unconstrained"
    if visual_mode == "brand_guided":
        return "background"
    return "none"


def normalize_slide_roles(slides: list[Slide], content_format: ContentFormat) -> list[Slide]:
    """Force the narrative frame: first slide is the cover, last slide closes.

    A slide with ``role_locked`` keeps whatever role it carries.  A closing slide
    the copy already tagged ``cta`` stays ``cta``.
    """
    if not slides:
        return []

    normalized = list(slides)
    first = normalized[0]
    if not first.role_locked and first.role != "cover":
        normalized[0] = first.model_copy(update={"role": "cover"})

    if content_format == "carousel" and len(normalized) > 1:
        last = normalized[-1]
        if not last.role_locked and last.role not in {"closing", "cta"}:
            normalized[-1] = last.model_copy(update={"role": "closing"})
    return normalized


def resolve_template_id(
    visual_mode: VisualMode,
    content_format: ContentFormat,
    role: str,
    template_set: TemplateSet | None = None,
    style_guide: StyleGuide | None = None,
) -> str:
    if visual_mode == "free":
        return GENERIC_TEMPLATE_ID

    keys = role_lookup_keys(role)
    if template_set is not None:
        for key in keys:
            template_id = template_set.templates_by_role.get(key)
            if template_id:
                return template_id
        if template_set.layout_params:
            for key in (*keys, "content"):
                if key in template_set.layout_params:
                    return PARAMETERIZED_TEMPLATE_ID

    if style_guide is not None:
        for key in keys:
            template_id = style_guide.role_to_template.get(key)
            if template_id:
                return template_id

    if content_format == "story" and role == "cover":
        return STORY_COVER_TEMPLATE_ID
    return ROLE_TEMPLATE_TABLE.get(role, DEFAULT_TEMPLATE_ID)


def plan_slides(
    slides: list[Slide],
    visual_mode: VisualMode,
    content_format: ContentFormat,
    template_set: TemplateSet | None = None,
    style_guide: StyleGuide | None = None,
) -> list[SlidePlan]:
    step = ai_step_for(visual_mode)
    return [
        SlidePlan(
            index=index,
            role=slide.role,
            template_id=resolve_template_id(visual_mode, content_format, slide.role, template_set, style_guide),
            ai_step=step,
        )
        for index, slide in enumerate(slides)
    ]


def apply_plan(slides: list[Slide], plans: list[SlidePlan]) -> list[Slide]:
    by_index = {plan.index: plan for plan in plans}
    resolved: list[Slide] = []
    for index, slide in enumerate(slides):
        plan = by_index.get(index)
        if plan is None:
            resolved.append(slide)
            continue
        resolved.append(slide.model_copy(update={"template": plan.template_id}))
    return resolved


def layout_params_for(template_set: TemplateSet | None, role: str) -> LayoutParams | None:
    if template_set is None or not template_set.layout_params:
        return None
    for key in (*role_lookup_keys(role), "content"):
        params = template_set.layout_params.get(key)
        if params is not None:
            return params
    return None
