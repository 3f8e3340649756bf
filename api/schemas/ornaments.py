"""
Ornament batch Pydantic schemas.
"""

from enum import StrEnum

from pydantic import BaseModel, Field

from .quota import QuotaStatusResponse


class SizeValue(StrEnum):
    """Supported output sizes."""

    SQUARE = "square"
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class GenerateOrnamentsRequest(BaseModel):
    """Request to generate one ornament image per style."""

    motif: str | None = Field(
        default=None,
        max_length=200,
        description="Motif to render, e.g. 'star' or 'クリスマスツリー'",
    )
    size: SizeValue = Field(default=SizeValue.SQUARE, description="Output size")
    random: bool = Field(default=False, description="Pick one of the built-in motifs")


class OrnamentImageResponse(BaseModel):
    """One generated image."""

    style_id: str = Field(..., description="Style identifier")
    style_name: str = Field(..., description="Style display name")
    image: str = Field(..., description="Embedded data:image/... URL")
    filename: str = Field(..., description="Suggested download filename")


class GenerateOrnamentsResponse(BaseModel):
    """One image per style plus the updated quota."""

    motif: str = Field(..., description="Motif that was rendered")
    size: SizeValue = Field(..., description="Output size")
    width: int
    height: int
    images: list[OrnamentImageResponse] = Field(default_factory=list)
    quota: QuotaStatusResponse


class StyleInfo(BaseModel):
    id: str
    name: str
    prompt: str


class SizeInfo(BaseModel):
    value: SizeValue
    label: str
    width: int
    height: int


class OrnamentOptionsResponse(BaseModel):
    """Selectable styles, sizes and built-in motifs."""

    styles: list[StyleInfo]
    sizes: list[SizeInfo]
    random_motifs: list[str]
    max_generations_per_day: int
