"""
XMP writing and parsing.
"""

import pytest

from xmpcube.core.properties import ImageProperties
from xmpcube.core.xmp import (
    XMPParseError,
    format_number,
    generate_xmp,
    parse_number,
    parse_tone_curve,
    parse_xmp,
    read_crs_fields,
)


LIGHTROOM_XMP = """<?xml version="1.0" encoding="UTF-8"?>
<x:xmpmeta xmlns:x="adobe:ns:meta/" x:xmptk="Adobe XMP Core 7.0">
 <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
  <rdf:Description rdf:about=""
    xmlns:crs="http://ns.adobe.com/camera-raw-settings/1.0/"
    crs:Version="15.0"
    crs:ProcessVersion="11.0"
    crs:WhiteBalance="As Shot"
    crs:Exposure2012="+0.50"
    crs:Contrast2012="-12"
    crs:Vibrance="abc"
    crs:HasSettings="True"
    crs:AlreadyApplied="false">
   <crs:ToneCurvePV2012>
    <rdf:Seq>
     <rdf:li>0, 0</rdf:li>
     <rdf:li>128, 140</rdf:li>
     <rdf:li>broken</rdf:li>
     <rdf:li>255, 255</rdf:li>
    </rdf:Seq>
   </crs:ToneCurvePV2012>
  </rdf:Description>
 </rdf:RDF>
</x:xmpmeta>
"""


def sample_properties():
    return ImageProperties(
        exposure=0.35,
        contrast=12,
        temperature=5071.428571428572,
        tint=-3,
        red_hue=-4,
        blue_saturation=18,
        split_toning_balance=63,
        parametric_shadow_split=24,
        vignette_amount=-20,
        grain_amount=25,
        tone_curve=[[0, 0], [64, 70], [255, 255]],
        tone_curve_red=[[0, 0], [255, 250]],
        tone_curve_name="Medium",
        camera_profile="Adobe Standard",
        has_settings=True,
        white_balance="As Shot",
        version="15.0",
        process_version="15.0",
    )


def test_generated_document_shape():
    xmp = generate_xmp("photo.jpg", sample_properties())
    assert xmp.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<x:xmpmeta" in xmp
    assert 'rdf:about="photo.jpg"' in xmp
    assert "<crs:Exposure>0.35</crs:Exposure>" in xmp
    assert "<crs:Contrast>12</crs:Contrast>" in xmp
    assert "<crs:HasSettings>True</crs:HasSettings>" in xmp
    assert "<rdf:li>64, 70</rdf:li>" in xmp


def test_unset_fields_are_omitted():
    xmp = generate_xmp("photo.jpg", ImageProperties())
    assert "VignetteFeather" not in xmp
    assert "GrainSize" not in xmp
    assert "ToneCurvePV2012" not in xmp


def test_write_then_read_gives_same_record():
    props = sample_properties()
    assert parse_xmp(generate_xmp("photo.jpg", props)) == props


def test_lightroom_attribute_form():
    props = parse_xmp(LIGHTROOM_XMP)
    assert props.exposure == 0.5
    assert props.contrast == -12
    assert props.vibrance == 0
    assert props.has_settings is True
    assert props.already_applied is False
    assert props.process_version == "11.0"
    assert props.white_balance == "As Shot"
    assert props.tone_curve == [[0, 0], [128, 140], [255, 255]]
    assert props.tone_curve_red is None
    assert props.parametric_midtone_split == 50


def test_read_crs_fields_collects_attributes_and_elements():
    raw = read_crs_fields(LIGHTROOM_XMP)
    assert raw["Exposure2012"] == "+0.50"
    assert isinstance(raw["ToneCurvePV2012"], list)


def test_bytes_with_bom_are_accepted():
    data = ("\ufeff" + LIGHTROOM_XMP).encode("utf-8")
    assert parse_xmp(data).exposure == 0.5


@pytest.mark.parametrize("document", [
    "",
    "not xml at all",
    "<x:xmpmeta xmlns:x='adobe:ns:meta/'></x:xmpmeta>",
])
def test_invalid_documents_raise(document):
    with pytest.raises(XMPParseError):
        parse_xmp(document)


def test_number_helpers():
    assert format_number(1.0) == "1"
    assert format_number(-12) == "-12"
    assert format_number(0.5) == "0.5"
    assert parse_number("+0.50") == 0.5
    assert parse_number("nan") == 0.0
    assert parse_number(None) == 0.0


def test_parse_tone_curve_skips_bad_points():
    assert parse_tone_curve(["0, 0", "x, 1", "1, 2, 3", "255, 255"]) == [[0, 0], [255, 255]]
    assert parse_tone_curve(["junk"]) is None
    assert parse_tone_curve(None) is None
