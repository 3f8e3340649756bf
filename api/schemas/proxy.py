"""
Proxy route Pydantic schemas.

The route parses its body by hand so that a missing prompt is a 400 with the
``{"error": "Prompt is required"}`` body; these models document the shape.
"""

from pydantic import BaseModel, Field


class ProxyImageRequest(BaseModel):
    """Body accepted by POST /generate-image."""

    prompt: str = Field(..., description="Text prompt for the model")
    width: int | None = Field(default=None, description="Requested width (clamped to 768)")
    height: int | None = Field(default=None, description="Requested height (clamped to 768)")
    api_type: str | None = Field(default=None, alias="apiType", description="Upstream API type")


class ProxyImageResponse(BaseModel):
    """Successful proxy response."""

    image: str = Field(..., description="Embedded data:image/... URL")
