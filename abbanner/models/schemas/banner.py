import enum
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field


class Variant(str, enum.Enum):
    A = "A"
    B = "B"


class PreviewMode(str, enum.Enum):
    """Builder preview setting. Only AUTO is normal (reporting) operation."""

    AUTO = "Auto"
    FORCE_A = "Force A"
    FORCE_B = "Force B"


class ActionType(str, enum.Enum):
    VIEW = "View"
    CLICK = "Click"


class VariantContentModel(BaseModel):
    """Authored content for one banner variant. Never mutated by the banner."""

    image_content: Optional[Union[Dict[str, Any], str]] = Field(
        None,
        description="CMS content reference: a JSON object (or its string encoding) or a bare content key.",
    )
    image_position: Optional[str] = Field(None, description="CSS object-position, e.g. 'center', 'top'.")
    title: Optional[str] = None
    description: Optional[str] = None
    button_label: Optional[str] = None
    button_url: Optional[str] = None


class BannerConfigModel(BaseModel):
    """Configuration supplied by the hosting page."""

    test_id: Optional[str] = None
    image_height: Optional[int] = Field(None, description="Image height in pixels, 400 when unset.")
    preview_mode: PreviewMode = PreviewMode.AUTO
    variant_a: VariantContentModel = Field(default_factory=VariantContentModel)
    variant_b: VariantContentModel = Field(default_factory=VariantContentModel)

    def content_for(self, variant: Variant) -> VariantContentModel:
        return self.variant_a if variant == Variant.A else self.variant_b


class BannerDisplayModel(BaseModel):
    """Display-ready bundle consumed by the page template."""

    image_url: Optional[str] = None
    alt_text: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    button_label: Optional[str] = None
    button_url: str = "#"
    image_style: str


class BannerRenderResponseModel(BaseModel):
    variant: Variant
    visitor_id: str
    display: BannerDisplayModel


class BannerClickResponseModel(BaseModel):
    variant: Variant
    button_url: str
    reported: bool = Field(..., description="Whether a Click event was dispatched by this request.")
