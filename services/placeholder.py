"""
Procedural placeholder renderer.

Draws a stylized ornament motif on a diagonal gradient with Pillow and
serializes it to PNG. Used when no remote model is reachable, so the output
is fully determined by the prompt and the dimensions.
"""

import asyncio
import logging
import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageChops, ImageColor, ImageDraw

from core.exceptions import InternalError

from .providers.base import BaseImageProvider, GenerationRequest, ImagePayload

logger = logging.getLogger(__name__)

DEFAULT_MOTIF = "Ornament"
DEFAULT_DIMENSION = 512
MOTIF_SCALE = 0.6

RGB = tuple[int, int, int]
Point = tuple[float, float]


# ── Backgrounds ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Background:
    """Gradient endpoints plus the two motif colors drawn on top of it."""

    name: str
    start: str
    end: str
    base_color: str = "#fff"
    accent_color: str = "#ffd700"


WHITE_BACKGROUND = Background("white", "#f8f8f8", "#e8e8e8", "#333", "#666")
CRYSTAL_BACKGROUND = Background("crystal", "#e3f2fd", "#bbdefb")
WARM_BACKGROUND = Background("3d", "#fff3e0", "#ffe0b2")
DEFAULT_BACKGROUND = Background("default", "#667eea", "#764ba2")

# Checked in order against the lower-cased prompt
BACKGROUND_KEYWORDS: list[tuple[tuple[str, ...], Background]] = [
    (("papercraft", "monochrome white"), WHITE_BACKGROUND),
    (("crystal", "glass"), CRYSTAL_BACKGROUND),
    (("pixar", "3d"), WARM_BACKGROUND),
]


def select_background(prompt: str) -> Background:
    """Pick the background palette from style keywords in the prompt."""
    lowered = prompt.lower()
    for keywords, background in BACKGROUND_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return background
    return DEFAULT_BACKGROUND


def extract_motif(prompt: str) -> str:
    """Return the text before the first comma, or the default motif."""
    match = re.match(r"^([^,]+),", prompt)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return DEFAULT_MOTIF


def _diagonal_gradient(width: int, height: int, start: str, end: str) -> Image.Image:
    """Linear gradient running from the top-left to the bottom-right corner."""
    # t(x, y) = (x*w + y*h) / (w^2 + h^2) splits into a column and a row term
    norm = float(width * width + height * height)
    columns = Image.new("L", (width, 1))
    columns.putdata([int(255 * x * width / norm) for x in range(width)])
    rows = Image.new("L", (1, height))
    rows.putdata([int(255 * y * height / norm) for y in range(height)])
    mask = ImageChops.add(
        columns.resize((width, height), Image.Resampling.NEAREST),
        rows.resize((width, height), Image.Resampling.NEAREST),
    )
    return Image.composite(
        Image.new("RGB", (width, height), end),
        Image.new("RGB", (width, height), start),
        mask,
    )


# ── Drawing helpers ──────────────────────────────────────────────────────────


def _circle(draw: ImageDraw.ImageDraw, x: float, y: float, r: float, **kwargs) -> None:
    draw.ellipse([x - r, y - r, x + r, y + r], **kwargs)


def _stroke(size: float, factor: float) -> int:
    return max(1, round(size * factor))


def _rotate(px: float, py: float, angle: float) -> Point:
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    return px * cos_a - py * sin_a, px * sin_a + py * cos_a


def _mix(a: RGB, b: RGB, t: float) -> RGB:
    return tuple(round(a[i] + (b[i] - a[i]) * t) for i in range(3))


# ── Motif routines ───────────────────────────────────────────────────────────
# Each routine draws centered on (x, y) within a box of side ``size``.


def draw_tree(draw, x, y, size, base, accent):
    tree = size * 0.6
    trunk_w, trunk_h = tree * 0.15, tree * 0.2
    for top, spread, bottom in ((-0.5, 0.3, -0.1), (-0.15, 0.4, 0.15), (0.1, 0.5, 0.4)):
        draw.polygon(
            [
                (x, y + tree * top),
                (x - tree * spread, y + tree * bottom),
                (x + tree * spread, y + tree * bottom),
            ],
            fill=base,
        )
    draw.rectangle(
        [x - trunk_w / 2, y + tree * 0.4, x + trunk_w / 2, y + tree * 0.4 + trunk_h],
        fill=accent,
    )
    _circle(draw, x, y - tree / 2, size * 0.05, fill=accent)
    _circle(draw, x - tree * 0.2, y, size * 0.04, fill=accent)
    _circle(draw, x + tree * 0.2, y + tree * 0.1, size * 0.04, fill=accent)


def draw_star(draw, x, y, size, base, accent):
    outer = size * 0.25
    inner = outer * 0.4
    points = []
    for i in range(10):
        radius = outer if i % 2 == 0 else inner
        angle = i * math.pi / 5 - math.pi / 2
        points.append((x + radius * math.cos(angle), y + radius * math.sin(angle)))
    draw.polygon(points, fill=accent, outline=base, width=_stroke(size, 0.02))


def draw_snowflake(draw, x, y, size, base, accent):
    arm = size * 0.3
    branch = arm * 0.3
    width = _stroke(size, 0.02)
    for i in range(6):
        angle = i * math.pi / 3
        segments = [((0, 0), (0, -arm))]
        for j in (1, 2):
            by = -arm * j / 3
            segments.append(((0, by), (-branch * 0.6, by - branch * 0.3)))
            segments.append(((0, by), (branch * 0.6, by - branch * 0.3)))
        for start, end in segments:
            sx, sy = _rotate(*start, angle)
            ex, ey = _rotate(*end, angle)
            draw.line([(x + sx, y + sy), (x + ex, y + ey)], fill=base, width=width)


def draw_bell(draw, x, y, size, base, accent):
    bell = size * 0.5
    r = bell / 2
    # Upper half-circle from the left edge over the top, then the flared rim
    outline = [
        (x + r * math.cos(math.pi + math.pi * k / 32), y + r * math.sin(math.pi + math.pi * k / 32))
        for k in range(33)
    ]
    outline += [(x + r, y + bell * 0.3), (x - r, y + bell * 0.3)]
    width = _stroke(size, 0.02)
    draw.polygon(outline, fill=accent, outline=base, width=width)
    inner = bell * 0.3
    draw.arc([x - inner, y - inner, x + inner, y + inner], 0, 180, fill=base, width=width)
    _circle(draw, x, y - r, bell * 0.15, fill=base)


def draw_wreath(draw, x, y, size, base, accent):
    radius = size * 0.3
    ring = _stroke(size, 0.08)
    # Canvas strokes are centered on the path, Pillow draws them inward
    outer = radius + ring / 2
    _circle(draw, x, y, outer, outline=base, width=ring)
    for i in range(6):
        angle = i * math.pi / 3
        _circle(
            draw,
            x + radius * 0.7 * math.cos(angle),
            y + radius * 0.7 * math.sin(angle),
            size * 0.04,
            fill=accent,
        )


def draw_santa(draw, x, y, size, base, accent):
    santa = size * 0.5
    _circle(draw, x, y - santa * 0.3, santa * 0.25, fill=accent)
    _circle(draw, x, y, santa * 0.2, fill=base)
    beard = santa * 0.15
    cy = y + santa * 0.1
    draw.arc(
        [x - beard, cy - beard, x + beard, cy + beard],
        180,
        360,
        fill=base,
        width=_stroke(size, 0.02),
    )


def draw_reindeer(draw, x, y, size, base, accent):
    deer = size * 0.4
    draw.ellipse([x - deer * 0.3, y - deer * 0.2, x + deer * 0.3, y + deer * 0.2], fill=base)
    _circle(draw, x - deer * 0.2, y - deer * 0.1, deer * 0.15, fill=base)
    width = _stroke(size, 0.02)
    for offset in (0.25, 0.15):
        draw.line(
            [
                (x - deer * offset, y - deer * 0.2),
                (x - deer * (offset + 0.1), y - deer * 0.35),
            ],
            fill=accent,
            width=width,
        )


def draw_present(draw, x, y, size, base, accent):
    box = size * 0.4
    half = box / 2
    draw.rectangle([x - half, y - half, x + half, y + half], fill=accent)
    draw.rectangle([x - box * 0.05, y - half, x + box * 0.05, y + half], fill=base)
    draw.rectangle([x - half, y - box * 0.05, x + half, y + box * 0.05], fill=base)
    _circle(draw, x, y, box * 0.15, fill=base)


def draw_candle(draw, x, y, size, base, accent):
    candle_w, candle_h = size * 0.15, size * 0.4
    top = y - candle_h / 2
    draw.rectangle([x - candle_w / 2, top, x + candle_w / 2, y + candle_h / 2], fill=base)
    draw.ellipse(
        [x - candle_w * 0.3, top - candle_w * 0.5, x + candle_w * 0.3, top + candle_w * 0.5],
        fill=accent,
    )
    draw.line([(x, top), (x, top - candle_w * 0.5)], fill=base, width=_stroke(size, 0.01))


def draw_ornament_ball(draw, x, y, size, base, accent):
    ball = size * 0.4
    r = ball / 2
    base_rgb = ImageColor.getrgb(base)[:3]
    accent_rgb = ImageColor.getrgb(accent)[:3]
    # Radial gradient approximated by shrinking discs drifting toward the focus
    fx, fy = x - ball * 0.2, y - ball * 0.2
    steps = 24
    for i in range(steps):
        t = i / steps
        _circle(
            draw,
            x + (fx - x) * t,
            y + (fy - y) * t,
            r * (1 - t),
            fill=_mix(base_rgb, accent_rgb, t),
        )
    _circle(draw, x, y - r, ball * 0.1, fill=base)


def draw_default(draw, x, y, size, base, accent):
    radius = size * 0.3
    ring = _stroke(size, 0.03)
    _circle(draw, x, y, radius + ring / 2, outline=base, width=ring)
    _circle(draw, x, y, radius * 0.6, fill=accent)


DrawRoutine = Callable[[ImageDraw.ImageDraw, float, float, float, str, str], None]

# Priority order; the first routine with a matching keyword wins
MOTIF_ROUTINES: list[tuple[tuple[str, ...], DrawRoutine]] = [
    (("tree", "ツリー"), draw_tree),
    (("star", "星"), draw_star),
    (("snowflake", "雪", "結晶"), draw_snowflake),
    (("bell", "ベル"), draw_bell),
    (("wreath", "リース"), draw_wreath),
    (("santa", "サンタ"), draw_santa),
    (("reindeer", "トナカイ"), draw_reindeer),
    (("present", "gift", "プレゼント"), draw_present),
    (("candle", "キャンドル"), draw_candle),
    (("ornament", "ball", "ボール"), draw_ornament_ball),
]


def select_motif_routine(motif: str) -> DrawRoutine:
    """Pick the draw routine for a motif by case-insensitive keyword match."""
    lowered = motif.lower()
    for keywords, routine in MOTIF_ROUTINES:
        if any(keyword in lowered for keyword in keywords):
            return routine
    return draw_default


# ── Rendering ────────────────────────────────────────────────────────────────


def render_placeholder_image(prompt: str, width: int, height: int) -> Image.Image:
    """Render the placeholder as a Pillow image."""
    background = select_background(prompt)
    motif = extract_motif(prompt)
    routine = select_motif_routine(motif)

    image = _diagonal_gradient(width, height, background.start, background.end)
    draw = ImageDraw.Draw(image)
    size = min(width, height) * MOTIF_SCALE
    routine(draw, width / 2, height / 2, size, background.base_color, background.accent_color)

    if routine is draw_ornament_ball:
        # Translucent highlight needs an RGBA draw context
        ball = size * 0.4
        overlay = ImageDraw.Draw(image, "RGBA")
        _circle(
            overlay,
            width / 2 - ball * 0.15,
            height / 2 - ball * 0.15,
            ball * 0.1,
            fill=(255, 255, 255, 153),
        )

    logger.debug(
        f"Rendered placeholder: motif={motif!r} routine={routine.__name__} "
        f"background={background.name} size={width}x{height}"
    )
    return image


def render_placeholder(prompt: str, width: int | None = None, height: int | None = None) -> bytes:
    """
    Render a placeholder image and return PNG bytes.

    Identical inputs always produce identical bytes.

    Raises:
        InternalError: If the image could not be rendered or encoded
    """
    width = width or DEFAULT_DIMENSION
    height = height or DEFAULT_DIMENSION
    try:
        image = render_placeholder_image(prompt, width, height)
        buffer = BytesIO()
        image.save(buffer, format="PNG")
    except (OSError, ValueError) as e:
        logger.error(f"Error generating placeholder image: {e}")
        raise InternalError(message=f"Failed to render placeholder image: {e}")
    return buffer.getvalue()


class PlaceholderProvider(BaseImageProvider):
    """Local provider that renders placeholders instead of calling a model."""

    @property
    def name(self) -> str:
        return "placeholder"

    @property
    def display_name(self) -> str:
        return "Procedural Placeholder"

    @property
    def is_available(self) -> bool:
        return True

    async def generate(self, request: GenerationRequest) -> ImagePayload:
        data = await asyncio.to_thread(
            render_placeholder, request.prompt, request.width, request.height
        )
        logger.info(
            f"Generated placeholder image: motif={extract_motif(request.prompt)!r} "
            f"{request.width}x{request.height} ({len(data)} bytes)"
        )
        return ImagePayload(data=data, mime_type="image/png")
