import pytest

from abbanner.core.settings import config_settings
from abbanner.models.schemas.banner import BannerConfigModel, Variant, VariantContentModel
from abbanner.models.schemas.content_ref import (
    AbsentContentRef,
    RawContentRef,
    StructuredContentRef,
)
from abbanner.services.content_service import (
    construct_asset_url,
    current_variant_data,
    extract_content_key,
    parse_content_ref,
    resolve_link_url,
)


@pytest.mark.parametrize(
    "ref",
    [{"contentKey": "k1"}, '{"contentKey": "k1"}', "k1", '"k1"'],
)
def test_extract_content_key_equivalent_forms(ref):
    assert extract_content_key(ref) == "k1"


@pytest.mark.parametrize(
    "ref, expected",
    [
        ({"id": "id-9"}, "id-9"),
        ({"contentKey": "k1", "id": "id-9"}, "k1"),
        ('{"id": "id-9"}', "id-9"),
        ({"title": "no key"}, None),
        ("{not json", "{not json"),
        (None, None),
        ("", None),
        (42, None),
    ],
)
def test_extract_content_key_fallbacks(ref, expected):
    assert extract_content_key(ref) == expected


@pytest.mark.parametrize("ref", ["123", "true", "null", "[\"k1\"]"])
def test_json_scalars_and_arrays_have_no_content_key(ref):
    assert isinstance(parse_content_ref(ref), AbsentContentRef)
    assert extract_content_key(ref) is None


def test_parse_content_ref_kinds():
    assert isinstance(parse_content_ref({"contentKey": "k"}), StructuredContentRef)
    assert parse_content_ref("MCX123") == RawContentRef(value="MCX123")
    assert isinstance(parse_content_ref(None), AbsentContentRef)


def test_construct_asset_url():
    assert construct_asset_url(None) is None
    assert construct_asset_url("MCX1", site_prefix="") == "/sfsites/c/cms/delivery/media/MCX1"
    assert construct_asset_url("MCX1", site_prefix="/s") == "/s/sfsites/c/cms/delivery/media/MCX1"


def test_construct_asset_url_uses_configured_prefix(monkeypatch):
    monkeypatch.setattr(config_settings, "SITE_BASE_PATH", "/shop/")
    assert construct_asset_url("MCX1") == "/shop/sfsites/c/cms/delivery/media/MCX1"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("", "#"),
        (None, "#"),
        ("tel:123", "tel:123"),
        ("mailto:sales@example.com", "mailto:sales@example.com"),
        ("https://example.com/x", "https://example.com/x"),
        ("http://example.com", "http://example.com"),
        ("foo", "/s/foo"),
        ("/foo", "/s/foo"),
        ("//foo/bar", "/s/foo/bar"),
    ],
)
def test_resolve_link_url(url, expected):
    assert resolve_link_url(url, site_prefix="/s") == expected


def test_resolve_link_url_without_prefix():
    assert resolve_link_url("foo", site_prefix="") == "/foo"


def _config(**kwargs):
    return BannerConfigModel(
        test_id="promo1",
        variant_a=VariantContentModel(
            image_content={"contentKey": "IMG_A"},
            title="Spring sale",
            description="Everything 20% off",
            button_label="Shop now",
            button_url="sale",
        ),
        variant_b=VariantContentModel(
            image_content="IMG_B",
            image_position="top",
            title="New arrivals",
            button_label="Browse",
            button_url="https://example.com/new",
        ),
        **kwargs,
    )


def test_current_variant_data_for_a_uses_defaults():
    display = current_variant_data(Variant.A, _config(), site_prefix="/s")

    assert display.image_url == "/s/sfsites/c/cms/delivery/media/IMG_A"
    assert display.alt_text == "Spring sale"
    assert display.title == "Spring sale"
    assert display.description == "Everything 20% off"
    assert display.button_label == "Shop now"
    assert display.button_url == "/s/sale"
    assert display.image_style == (
        "width: 100%; height: 400px; object-fit: cover; "
        "object-position: center; border-radius: 4px;"
    )


def test_current_variant_data_for_b():
    display = current_variant_data(Variant.B, _config(image_height=250), site_prefix="")

    assert display.image_url == "/sfsites/c/cms/delivery/media/IMG_B"
    assert display.title == "New arrivals"
    assert display.description is None
    assert display.button_url == "https://example.com/new"
    assert "height: 250px;" in display.image_style
    assert "object-position: top;" in display.image_style


def test_current_variant_data_without_content():
    display = current_variant_data(Variant.B, BannerConfigModel(), site_prefix="")

    assert display.image_url is None
    assert display.button_url == "#"
