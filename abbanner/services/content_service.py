# services/content_service.py
import json
import re
from typing import Any, Optional

from abbanner.core.settings import config_settings
from abbanner.models.schemas.banner import BannerConfigModel, BannerDisplayModel, Variant
from abbanner.models.schemas.content_ref import (
    AbsentContentRef,
    ContentRef,
    RawContentRef,
    StructuredContentRef,
)

DEFAULT_IMAGE_POSITION = "center"
DEFAULT_IMAGE_HEIGHT = 400

_ABSOLUTE_URL = re.compile(r"^(http|https|mailto|tel):")


def _site_prefix(site_prefix: Optional[str]) -> str:
    prefix = config_settings.SITE_BASE_PATH if site_prefix is None else site_prefix
    return (prefix or "").rstrip("/")


def _structured(ref: dict) -> StructuredContentRef:
    content_key = ref.get("contentKey")
    ref_id = ref.get("id")
    return StructuredContentRef(
        content_key=str(content_key) if content_key else None,
        id=str(ref_id) if ref_id else None,
    )


def parse_content_ref(ref: Any) -> ContentRef:
    """
    Classifies a CMS image reference.

    Objects (or their JSON string encoding) are structured references; any
    other non-empty string that is not valid JSON is a raw content key.
    """
    if isinstance(ref, dict):
        return _structured(ref)
    if not isinstance(ref, str) or not ref:
        return AbsentContentRef()

    try:
        decoded = json.loads(ref)
    except ValueError:
        return RawContentRef(value=ref)

    if isinstance(decoded, dict):
        return _structured(decoded)
    if isinstance(decoded, str):
        # a JSON-quoted key, '"MCX123"'
        return RawContentRef(value=decoded) if decoded else AbsentContentRef()
    # numbers, booleans and null carry no key
    return AbsentContentRef()


def extract_content_key(ref: Any) -> Optional[str]:
    parsed = parse_content_ref(ref)
    if isinstance(parsed, StructuredContentRef):
        return parsed.content_key or parsed.id
    if isinstance(parsed, RawContentRef):
        return parsed.value
    return None


def construct_asset_url(content_key: Optional[str], site_prefix: Optional[str] = None) -> Optional[str]:
    if not content_key:
        return None
    route = config_settings.ASSET_DELIVERY_ROUTE
    return f"{_site_prefix(site_prefix)}{route}{content_key}"


def resolve_link_url(url: Optional[str], site_prefix: Optional[str] = None) -> str:
    """
    ``"#"`` for an empty link, absolute http(s)/mailto/tel links unchanged,
    anything else becomes a site-relative path with a single leading slash.
    """
    if not url:
        return "#"
    if _ABSOLUTE_URL.match(url):
        return url
    return f"{_site_prefix(site_prefix)}/{url.lstrip('/')}"


def build_image_style(height: int, position: str) -> str:
    return (
        f"width: 100%; height: {height}px; object-fit: cover; "
        f"object-position: {position}; border-radius: 4px;"
    )


def current_variant_data(
    variant: Variant, config: BannerConfigModel, site_prefix: Optional[str] = None
) -> BannerDisplayModel:
    """Projects the assigned variant's content into a display bundle."""
    content = config.content_for(variant)

    position = content.image_position or DEFAULT_IMAGE_POSITION
    height = config.image_height or DEFAULT_IMAGE_HEIGHT

    return BannerDisplayModel(
        image_url=construct_asset_url(extract_content_key(content.image_content), site_prefix),
        alt_text=content.title,
        title=content.title,
        description=content.description,
        button_label=content.button_label,
        button_url=resolve_link_url(content.button_url, site_prefix),
        image_style=build_image_style(height, position),
    )
