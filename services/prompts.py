"""
Style presets, size options and prompt composition for ornament batches.
"""

import re
from dataclasses import dataclass

from core.exceptions import ValidationError


@dataclass(frozen=True)
class Style:
    """A fixed rendering style appended to every motif."""

    id: str
    name: str
    prompt: str


@dataclass(frozen=True)
class SizeOption:
    """A selectable output size."""

    value: str
    label: str
    width: int
    height: int


# One image per style, in this order
STYLES: list[Style] = [
    Style(
        id="crystal",
        name="Crystal Glass",
        prompt=(
            "delicate transparent glass ornament, crystal clear, intricate details, "
            "elegant, Christmas decoration"
        ),
    ),
    Style(
        id="cinematic",
        name="Cinematic 3D Animation",
        prompt=(
            "Pixar-style 3D rendered ornament, cinematic lighting, vibrant colors, "
            "smooth surfaces, Christmas decoration"
        ),
    ),
    Style(
        id="snowglobe",
        name="Glass Snow Globe",
        prompt=(
            "glass snow globe ornament, snowflakes inside, Christmas scene, "
            "vintage style, elegant"
        ),
    ),
    Style(
        id="papercraft",
        name="Papercraft",
        prompt=(
            "white papercraft ornament, intricate layered paper design, origami style, "
            "minimalist white only, monochrome white, no colors, pure white paper, "
            "Christmas decoration"
        ),
    ),
]

SIZE_OPTIONS: list[SizeOption] = [
    SizeOption(value="square", label="Square", width=1024, height=1024),
    SizeOption(value="vertical", label="9:16 Vertical", width=576, height=1024),
    SizeOption(value="horizontal", label="16:9 Horizontal", width=1024, height=576),
]

DEFAULT_SIZE = "square"

# Built-in motifs offered by the "surprise me" button
RANDOM_MOTIFS: list[str] = [
    "クリスマスツリー",
    "星",
    "雪の結晶",
    "ベル",
    "リース",
    "サンタクロース",
    "トナカイ",
    "プレゼント",
    "キャンドル",
    "オーナメントボール",
]

MOTIF_TRANSLATIONS: dict[str, str] = {
    "クリスマスツリー": "Christmas tree",
    "星": "star",
    "雪の結晶": "snowflake",
    "ベル": "bell",
    "リース": "wreath",
    "サンタクロース": "Santa Claus",
    "トナカイ": "reindeer",
    "プレゼント": "present",
    "キャンドル": "candle",
    "オーナメントボール": "ornament ball",
}


def translate_motif(motif: str) -> str:
    """Translate a built-in motif to English; anything else passes through."""
    return MOTIF_TRANSLATIONS.get(motif, motif)


def compose_prompt(motif: str, style: Style) -> str:
    """Build the model prompt for one motif in one style."""
    return f"{translate_motif(motif)}, {style.prompt}"


def get_size(value: str) -> SizeOption:
    for option in SIZE_OPTIONS:
        if option.value == value:
            return option
    raise ValidationError(
        message=f"Unknown size: {value}",
        details={"valid_sizes": [s.value for s in SIZE_OPTIONS]},
    )


# Characters not allowed in a filename on common filesystems
UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f\x7f]+')


def safe_filename_part(text: str, fallback: str = "ornament") -> str:
    """Make free text usable as one path component."""
    cleaned = UNSAFE_FILENAME_CHARS.sub("-", text).strip(" .-")
    return cleaned[:100] or fallback


def build_download_filename(style_id: str, motif: str, timestamp_ms: int) -> str:
    """Suggested filename for a downloaded ornament image."""
    return f"noel-atelier-{style_id}-{safe_filename_part(motif)}-{timestamp_ms}.png"
