from __future__ import annotations

import re

from content_studio_cli.models.brand import BrandTokens, StyleGalleryEntry, TemplateSet
from content_studio_cli.models.content import FORMAT_DIMENSIONS, Slide
from content_studio_cli.settings import SafeAreaSettings

HEADLINE_PROMPT_LIMIT = 80
BODY_PROMPT_LIMIT = 180
MAX_PROMPT_BULLETS = 5

FREE_QUALITY_HINT = "Clean, modern, high-end aesthetic. No text overlays. Ultra high resolution."

_URL_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)
_WWW_PATTERN = re.compile(r"\bwww\.\S+", re.IGNORECASE)
_UTM_PATTERN = re.compile(r"[?&]?utm_[a-z]+=\S*", re.IGNORECASE)
_DOMAIN_PATTERN = re.compile(r"\b[\w-]+(?:\.[\w-]+)*\.(?:com|net|org|io|br|co|info|news)(?:\.[a-z]{2})?\b\S*", re.IGNORECASE)
_LABEL_PATTERN = re.compile(r"\b(?:fonte|source|via|link|url|leia mais|read more)\s*:\s*", re.IGNORECASE)
_WHITESPACE_PATTERN = re.compile(r"\s+")

ROLE_BACKGROUND_DESCRIPTIONS: dict[str, str] = {
    "cover": "Bold, eye-catching opening background with a strong focal area and generous empty space for a large headline.",
    "context": "Calm, supportive background that sets the scene; low visual noise behind a central text block.",
    "insight": "Background with a subtle sense of discovery; soft depth, leaves the center clear for text.",
    "bullets": "Very clean, structured background suited to a list; minimal detail, even lighting.",
    "closing": "Warm, conclusive background with a sense of resolution and room for a call to action.",
    "cta": "Energetic background that invites action, clear space for a short call to action.",
}
_DEFAULT_ROLE_DESCRIPTION = "Clean editorial background with clear space for overlaid text."


def sanitize_text(text: str | None) -> str:
    """Strip URLs, domains, tracking params and metadata labels before they reach a prompt."""
    if not text:
        return ""
    cleaned = _URL_PATTERN.sub("", text)
    cleaned = _WWW_PATTERN.sub("", cleaned)
    cleaned = _UTM_PATTERN.sub("", cleaned)
    cleaned = _DOMAIN_PATTERN.sub("", cleaned)
    cleaned = _LABEL_PATTERN.sub("", cleaned)
    return _WHITESPACE_PATTERN.sub(" ", cleaned).strip()


def truncate_words(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    cut = text[:limit].rsplit(" ", 1)[0].rstrip(" ,.;:")
    return f"{cut or text[:limit]}…"


def palette_summary(tokens: BrandTokens) -> str:
    return ", ".join(f"{color.name} {color.hex}" for color in tokens.palette)


def style_constraints(template_set: TemplateSet | None) -> list[str]:
    if template_set is None:
        return []
    rules = template_set.rules
    lines: list[str] = []
    if rules.waves:
        lines.append("Use soft organic wave shapes as the decorative element.")
    if rules.phone_mockup:
        lines.append("Leave room for a phone mockup; do not draw one.")
    if rules.body_in_card:
        lines.append("Reserve a calm central area where a text card will sit.")
    if rules.inner_frame:
        lines.append("Include a thin inner frame inset from the edges.")
    if rules.uppercase_headlines:
        lines.append("Composition should suit bold uppercase headlines.")

    signature = template_set.visual_signature
    if signature is not None:
        if signature.primary_bg_mode:
            lines.append(f"Background mode: {signature.primary_bg_mode}.")
        if signature.card_style:
            lines.append(f"Card style: {signature.card_style}.")
        if signature.decorative_shape:
            lines.append(f"Decorative shape: {signature.decorative_shape}.")
    return lines


def build_background_prompt(
    slide: Slide,
    content_format: str,
    tokens: BrandTokens | None = None,
    template_set: TemplateSet | None = None,
    style_entry: StyleGalleryEntry | None = None,
    safe_area: SafeAreaSettings | None = None,
) -> str:
    """Background-only prompt: the overlay layer draws all text, the image carries none."""
    safe_area = safe_area or SafeAreaSettings()
    width, height = FORMAT_DIMENSIONS.get(content_format, FORMAT_DIMENSIONS["carousel"])

    parts = [
        f"Create a {width}x{height} background image for a social media {content_format} slide.",
        "The image must contain ZERO text: no letters, numbers, words, logos, watermarks or signage.",
        f"Keep the top {safe_area.top_px}px and bottom {safe_area.bottom_px}px free of important detail "
        "so text and logo can be overlaid.",
        f"Slide role: {slide.role}. {ROLE_BACKGROUND_DESCRIPTIONS.get(slide.role, _DEFAULT_ROLE_DESCRIPTION)}",
    ]

    if tokens is not None:
        parts.append(f"Brand: {tokens.name}. Visual tone: {tokens.visual_tone}.")
        if tokens.palette:
            parts.append(f"Use only this palette: {palette_summary(tokens)}.")
    if style_entry is not None and style_entry.style_prompt:
        parts.append(f"Style: {style_entry.style_prompt}")

    constraints = style_constraints(template_set)
    if constraints:
        parts.append("Style constraints: " + " ".join(constraints))

    theme = sanitize_text(slide.illustration_prompt)
    if theme:
        parts.append(f"Visual theme: {theme}.")

    parts.append("Match the look of the reference images: composition, lighting, texture and color treatment.")
    parts.append("Do not copy any text, people or logos from the references.")
    if tokens is not None and tokens.dont_rules:
        parts.append(f"Avoid: {sanitize_text(tokens.dont_rules)}.")
    return " ".join(parts)


def build_free_prompt(slide: Slide, tokens: BrandTokens | None = None, style_hint: str | None = None) -> str:
    """Unconstrained prompt; carries a palette hint only when brand tokens are available."""
    subject = sanitize_text(slide.illustration_prompt) or sanitize_text(slide.headline) or "Abstract editorial scene"
    prefix = f"{style_hint} " if style_hint else ""
    prompt = f"{prefix}{subject}. {FREE_QUALITY_HINT}"
    if tokens is not None and tokens.palette:
        prompt += f" Color hint: {palette_summary(tokens)}. Tone: {tokens.visual_tone}."
    return prompt


def build_text_slide_prompt(slide: Slide, content_format: str, tokens: BrandTokens) -> str:
    """Full-slide prompt that asks the model to render the slide text itself."""
    width, height = FORMAT_DIMENSIONS.get(content_format, FORMAT_DIMENSIONS["carousel"])
    headline = truncate_words(sanitize_text(slide.headline), HEADLINE_PROMPT_LIMIT)
    body = truncate_words(sanitize_text(slide.body), BODY_PROMPT_LIMIT)
    bullets = [sanitize_text(bullet) for bullet in (slide.bullets or [])[:MAX_PROMPT_BULLETS]]

    sections = [
        f"Create a {width}x{height} social media slide for the brand {tokens.name}.",
        "BRAND TOKENS:",
        f"- Palette: {palette_summary(tokens) or 'brand default'}",
        f"- Fonts: headings {tokens.fonts.headings}, body {tokens.fonts.body}",
        f"- Tone: {tokens.visual_tone}",
        "MANDATORY RULES:",
        "- Render the text below exactly as written, spelling and accents included.",
        f'- Headline: "{headline}"',
    ]
    if body:
        sections.append(f'- Body: "{body}"')
    for bullet in bullets:
        sections.append(f'- Bullet: "{bullet}"')
    if tokens.do_rules:
        sections.append(f"- {sanitize_text(tokens.do_rules)}")

    sections.append("NEGATIVES:")
    sections.append("- No URLs, handles, watermarks or extra text.")
    if tokens.dont_rules:
        sections.append(f"- {sanitize_text(tokens.dont_rules)}")
    sections.append("OUTPUT:")
    sections.append("- A single finished slide image, text legible at phone size.")
    return "\n".join(sections)
