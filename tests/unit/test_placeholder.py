"""
Unit tests for the procedural placeholder renderer.
"""

from io import BytesIO

import pytest
from PIL import Image

from core.exceptions import InternalError
from services.placeholder import (
    CRYSTAL_BACKGROUND,
    DEFAULT_BACKGROUND,
    WARM_BACKGROUND,
    WHITE_BACKGROUND,
    PlaceholderProvider,
    draw_default,
    draw_ornament_ball,
    draw_present,
    draw_snowflake,
    draw_star,
    draw_tree,
    extract_motif,
    render_placeholder,
    select_background,
    select_motif_routine,
)
from services.prompts import STYLES, compose_prompt
from services.providers.base import GenerationRequest


class TestMotifSelection:
    """Tests for motif extraction and dispatch."""

    def test_extract_motif(self):
        assert extract_motif("star, glass ornament") == "star"
        assert extract_motif("  Christmas tree  , elegant") == "Christmas tree"
        assert extract_motif("no comma here") == "Ornament"
        assert extract_motif("") == "Ornament"

    @pytest.mark.parametrize(
        "motif,routine",
        [
            ("star", draw_star),
            ("Shooting STAR", draw_star),
            ("星", draw_star),
            ("Christmas tree", draw_tree),
            ("snowflake", draw_snowflake),
            ("雪の結晶", draw_snowflake),
            ("gift box", draw_present),
            ("ornament ball", draw_ornament_ball),
            ("snowman", draw_default),
            ("Ornament", draw_ornament_ball),
        ],
    )
    def test_dispatch(self, motif, routine):
        assert select_motif_routine(motif) is routine

    def test_priority_order(self):
        # "tree" is checked before "star"
        assert select_motif_routine("star on a tree") is draw_tree


class TestBackgrounds:
    """Tests for background selection from style keywords."""

    def test_style_backgrounds(self):
        backgrounds = {style.id: select_background(compose_prompt("star", style)) for style in STYLES}

        assert backgrounds["papercraft"] == WHITE_BACKGROUND
        assert backgrounds["crystal"] == CRYSTAL_BACKGROUND
        assert backgrounds["cinematic"] == WARM_BACKGROUND
        # "glass snow globe" matches the glass keyword
        assert backgrounds["snowglobe"] == CRYSTAL_BACKGROUND

    def test_case_insensitive(self):
        assert select_background("star, PIXAR style") == WARM_BACKGROUND
        assert select_background("star, Monochrome White") == WHITE_BACKGROUND

    def test_default(self):
        assert select_background("star, watercolor") == DEFAULT_BACKGROUND

    def test_white_style_uses_dark_motif_colors(self):
        assert WHITE_BACKGROUND.base_color == "#333"
        assert WHITE_BACKGROUND.accent_color == "#666"
        assert DEFAULT_BACKGROUND.base_color == "#fff"
        assert DEFAULT_BACKGROUND.accent_color == "#ffd700"


class TestRender:
    """Tests for render_placeholder."""

    def test_png_dimensions(self):
        data = render_placeholder("star, elegant", 320, 180)

        image = Image.open(BytesIO(data))
        assert image.format == "PNG"
        assert image.size == (320, 180)

    def test_deterministic(self):
        first = render_placeholder("bell, vintage style", 256, 256)
        second = render_placeholder("bell, vintage style", 256, 256)

        assert first == second

    def test_different_motifs_differ(self):
        star = render_placeholder("star, elegant", 128, 128)
        default = render_placeholder("snowman, elegant", 128, 128)

        assert star != default

    def test_gradient_runs_diagonally(self):
        data = render_placeholder("snowman, watercolor", 200, 200)
        image = Image.open(BytesIO(data)).convert("RGB")

        # Top-left is the start color, bottom-right approaches the end color
        assert image.getpixel((0, 0)) == (0x66, 0x7E, 0xEA)
        r, g, b = image.getpixel((199, 199))
        assert abs(r - 0x76) <= 3 and abs(g - 0x4B) <= 3 and abs(b - 0xA2) <= 3

    def test_missing_dimensions_default(self):
        image = Image.open(BytesIO(render_placeholder("star, elegant", 0, None)))

        assert image.size == (512, 512)

    def test_render_failure_is_internal_error(self):
        with pytest.raises(InternalError):
            render_placeholder("star, elegant", -10, 100)


class TestPlaceholderProvider:
    async def test_generate(self):
        provider = PlaceholderProvider()

        payload = await provider.generate(GenerationRequest("wreath, elegant", 64, 64))

        assert payload.mime_type == "image/png"
        assert payload.to_data_url().startswith("data:image/png;base64,")
        assert payload.data == render_placeholder("wreath, elegant", 64, 64)
