from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class StylePreset:
    system_addition: str
    user_guide: str
    slide_guide: str
    allow_cta: bool = True


STYLE_PRESETS: dict[str, StylePreset] = {
    "news": StylePreset(
        system_addition="Write like a sharp news editor: factual, current, no hype.",
        user_guide="Explain what happened, why it matters and what comes next.",
        slide_guide="Cover states the news; middle slides give context and impact; last slide points to the takeaway.",
    ),
    "quote": StylePreset(
        system_addition="Build the piece around one memorable quote or statement.",
        user_guide="Lead with the quote, attribute it, then reflect on its meaning.",
        slide_guide="Cover carries the quote; following slides unpack it. Do not add a call to action.",
        allow_cta=False,
    ),
    "tip": StylePreset(
        system_addition="Be a practical coach: actionable, concrete, numbered when useful.",
        user_guide="Turn the trend into tips the reader can apply today.",
        slide_guide="Cover promises the tips; each middle slide delivers one tip; last slide recaps.",
    ),
    "educational": StylePreset(
        system_addition="Teach clearly, one concept per slide, no jargon without explanation.",
        user_guide="Explain the concept behind the trend step by step.",
        slide_guide="Cover poses the question; middle slides build the explanation; last slide summarizes.",
    ),
    "curiosity": StylePreset(
        system_addition="Spark curiosity with surprising facts and open loops.",
        user_guide="Hook with the most surprising angle of the trend.",
        slide_guide="Cover teases; middle slides reveal facts progressively; last slide lands the payoff.",
    ),
}

DEFAULT_STYLE = "news"


def get_style_preset(style: str | None) -> StylePreset:
    return STYLE_PRESETS.get(style or DEFAULT_STYLE, STYLE_PRESETS[DEFAULT_STYLE])
