from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, PositiveInt, field_validator


class LayoutVariant(str, Enum):
    """Closed set of layout styles a preview can be rendered with."""

    DEFAULT = "Default"
    IMAGE_BACKGROUND = "ImageBackground"
    CORNER_THUMBNAIL = "CornerThumbnail"
    SPLIT_VIEW = "SplitView"


class PreviewRequest(BaseModel):
    """Payload for rendering a social preview image."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, description="Headline drawn at the top of the text column.")
    content: str = Field(
        ...,
        min_length=1,
        description=(
            "Body text. One run per line; lines starting with '- ' become bullets "
            "and lines wrapped in '**' are bold."
        ),
    )
    source_image: HttpUrl | None = Field(
        default=None,
        alias="sourceImage",
        description="Optional remote image placed according to the variant.",
    )
    variant: LayoutVariant = Field(
        default=LayoutVariant.DEFAULT,
        description="Layout style for the preview.",
    )

    @field_validator("title", "content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class LegacyPreviewRequest(BaseModel):
    """Body accepted by the original `/generate-og-image` endpoint."""

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    image_url: HttpUrl | None = Field(default=None, alias="imageUrl")

    @field_validator("title", "content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class PreviewPublishResponse(BaseModel):
    """Response returned after a preview has been stored."""

    url: str = Field(..., description="Public URL where the PNG can be fetched.")
    variant: LayoutVariant = Field(..., description="Layout the preview was rendered with.")
    has_photo: bool = Field(
        ...,
        description="False when the source image could not be fetched or decoded.",
    )
    width: PositiveInt = Field(..., description="Canvas width in pixels.")
    height: PositiveInt = Field(..., description="Canvas height in pixels.")
