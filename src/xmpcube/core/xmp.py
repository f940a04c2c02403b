"""
XMP Camera Raw Settings
=======================

Writes an ImageProperties record as an XMP sidecar using the Camera Raw
Settings vocabulary (``crs:``), and reads such documents back.

Document shape:

    <?xml version="1.0" encoding="UTF-8"?>
    <x:xmpmeta xmlns:x="adobe:ns:meta/" ...>
      <rdf:RDF>
        <rdf:Description rdf:about="photo.jpg">
          <crs:Exposure>0.5</crs:Exposure>
          ...
          <crs:ToneCurvePV2012>
            <rdf:Seq><rdf:li>0, 0</rdf:li>...</rdf:Seq>
          </crs:ToneCurvePV2012>

The reader accepts both the element form above and the attribute form
Lightroom writes (``<rdf:Description crs:Exposure2012="+0.50" .../>``).
"""

import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import fields
from typing import Dict, List, Optional, Tuple, Union

from xmpcube.core.properties import ImageProperties, ToneCurve


logger = logging.getLogger(__name__)

X_NS = "adobe:ns:meta/"
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
CRS_NS = "http://ns.adobe.com/camera-raw-settings/1.0/"

XMP_TOOLKIT = "xmp-cube 1.0"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

ET.register_namespace("x", X_NS)
ET.register_namespace("rdf", RDF_NS)
ET.register_namespace("crs", CRS_NS)


class XMPParseError(ValueError):
    """The document is not XML, or carries no Camera Raw settings."""


NUMBER = "number"
BOOLEAN = "boolean"
STRING = "string"
CURVE = "curve"

# (record field, crs: local name, value kind), in document order
CRS_PROPERTIES: Tuple[Tuple[str, str, str], ...] = (
    ("version", "Version", STRING),
    ("process_version", "ProcessVersion", STRING),
    ("white_balance", "WhiteBalance", STRING),
    ("temperature", "Temperature", NUMBER),
    ("tint", "Tint", NUMBER),
    ("exposure", "Exposure", NUMBER),
    ("contrast", "Contrast", NUMBER),
    ("brightness", "Brightness", NUMBER),
    ("shadows", "Shadows", NUMBER),
    ("highlights", "Highlights", NUMBER),
    ("whites", "Whites", NUMBER),
    ("blacks", "Blacks", NUMBER),
    ("saturation", "Saturation", NUMBER),
    ("vibrance", "Vibrance", NUMBER),
    ("texture", "Texture", NUMBER),
    ("clarity", "Clarity", NUMBER),
    ("dehaze", "Dehaze", NUMBER),
    ("sharpness", "Sharpness", NUMBER),
    ("luminance_smoothing", "LuminanceSmoothing", NUMBER),
    ("color_noise_reduction", "ColorNoiseReduction", NUMBER),
    ("shadow_tint", "ShadowTint", NUMBER),
    ("tone_map_strength", "ToneMapStrength", NUMBER),
    ("red_hue", "HueAdjustmentRed", NUMBER),
    ("red_saturation", "SaturationAdjustmentRed", NUMBER),
    ("orange_hue", "HueAdjustmentOrange", NUMBER),
    ("orange_saturation", "SaturationAdjustmentOrange", NUMBER),
    ("yellow_hue", "HueAdjustmentYellow", NUMBER),
    ("yellow_saturation", "SaturationAdjustmentYellow", NUMBER),
    ("green_hue", "HueAdjustmentGreen", NUMBER),
    ("green_saturation", "SaturationAdjustmentGreen", NUMBER),
    ("aqua_hue", "HueAdjustmentAqua", NUMBER),
    ("aqua_saturation", "SaturationAdjustmentAqua", NUMBER),
    ("blue_hue", "HueAdjustmentBlue", NUMBER),
    ("blue_saturation", "SaturationAdjustmentBlue", NUMBER),
    ("purple_hue", "HueAdjustmentPurple", NUMBER),
    ("purple_saturation", "SaturationAdjustmentPurple", NUMBER),
    ("magenta_hue", "HueAdjustmentMagenta", NUMBER),
    ("magenta_saturation", "SaturationAdjustmentMagenta", NUMBER),
    ("split_toning_shadow_hue", "SplitToningShadowHue", NUMBER),
    ("split_toning_shadow_saturation", "SplitToningShadowSaturation", NUMBER),
    ("split_toning_highlight_hue", "SplitToningHighlightHue", NUMBER),
    ("split_toning_highlight_saturation", "SplitToningHighlightSaturation", NUMBER),
    ("split_toning_balance", "SplitToningBalance", NUMBER),
    ("parametric_shadows", "ParametricShadows", NUMBER),
    ("parametric_darks", "ParametricDarks", NUMBER),
    ("parametric_lights", "ParametricLights", NUMBER),
    ("parametric_highlights", "ParametricHighlights", NUMBER),
    ("parametric_shadow_split", "ParametricShadowSplit", NUMBER),
    ("parametric_midtone_split", "ParametricMidtoneSplit", NUMBER),
    ("parametric_highlight_split", "ParametricHighlightSplit", NUMBER),
    ("vignette_amount", "VignetteAmount", NUMBER),
    ("vignette_feather", "VignetteFeather", NUMBER),
    ("vignette_midpoint", "VignetteMidpoint", NUMBER),
    ("grain_amount", "GrainAmount", NUMBER),
    ("grain_size", "GrainSize", NUMBER),
    ("grain_frequency", "GrainFrequency", NUMBER),
    ("camera_profile", "CameraProfile", STRING),
    ("camera_profile_digest", "CameraProfileDigest", STRING),
    ("has_settings", "HasSettings", BOOLEAN),
    ("has_crop", "HasCrop", BOOLEAN),
    ("already_applied", "AlreadyApplied", BOOLEAN),
    ("tone_curve_name", "ToneCurveName", STRING),
    ("tone_curve", "ToneCurvePV2012", CURVE),
    ("tone_curve_red", "ToneCurvePV2012Red", CURVE),
    ("tone_curve_green", "ToneCurvePV2012Green", CURVE),
    ("tone_curve_blue", "ToneCurvePV2012Blue", CURVE),
)

# Process Version 2012 names Lightroom writes for the basic sliders
CRS_ALIASES: Dict[str, str] = {
    "Exposure": "Exposure2012",
    "Contrast": "Contrast2012",
    "Highlights": "Highlights2012",
    "Shadows": "Shadows2012",
    "Whites": "Whites2012",
    "Blacks": "Blacks2012",
    "Clarity": "Clarity2012",
}

RawValue = Union[str, List[str]]


def _crs(name: str) -> str:
    return f"{{{CRS_NS}}}{name}"


def _rdf(name: str) -> str:
    return f"{{{RDF_NS}}}{name}"


# =============================================================================
# WRITING
# =============================================================================

def format_number(value: float) -> str:
    """Integers without a decimal point, other floats with full precision."""
    if isinstance(value, bool):
        return str(int(value))
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def _format_value(value, kind: str) -> str:
    if kind == BOOLEAN:
        return "True" if value else "False"
    if kind == NUMBER:
        return format_number(value)
    return str(value)


def generate_xmp(filename: str, properties: ImageProperties) -> str:
    """
    Serialize a record as an XMP sidecar document.

    Fields that are None (unset effects, absent curves) are left out.
    """
    root = ET.Element(f"{{{X_NS}}}xmpmeta", {f"{{{X_NS}}}xmptk": XMP_TOOLKIT})
    rdf = ET.SubElement(root, _rdf("RDF"))
    desc = ET.SubElement(rdf, _rdf("Description"), {_rdf("about"): filename})

    for field_name, crs_name, kind in CRS_PROPERTIES:
        value = getattr(properties, field_name)
        if value is None:
            continue

        if kind == CURVE:
            seq = ET.SubElement(ET.SubElement(desc, _crs(crs_name)), _rdf("Seq"))
            for x, y in value:
                ET.SubElement(seq, _rdf("li")).text = f"{format_number(x)}, {format_number(y)}"
        else:
            ET.SubElement(desc, _crs(crs_name)).text = _format_value(value, kind)

    ET.indent(root, space="  ")
    return XML_DECLARATION + ET.tostring(root, encoding="unicode") + "\n"


# =============================================================================
# READING
# =============================================================================

def _parse_root(xmp: Union[str, bytes]) -> ET.Element:
    if isinstance(xmp, bytes):
        xmp = xmp.decode("utf-8", errors="replace")
    text = xmp.strip().lstrip("\ufeff")
    if not text:
        raise XMPParseError("Invalid XMP format: empty document")
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise XMPParseError(f"Invalid XMP format: {e}") from e


def read_crs_fields(xmp: Union[str, bytes]) -> Dict[str, RawValue]:
    """
    Collect every crs: value in the document, keyed by local name.

    Element text and Description attributes are both read. Curves come
    back as the list of their ``rdf:li`` strings.

    Raises:
        XMPParseError: not XML, or no rdf:Description at all
    """
    root = _parse_root(xmp)
    descriptions = list(root.iter(_rdf("Description")))
    if not descriptions:
        raise XMPParseError("Invalid XMP format: missing Camera Raw Settings")

    prefix = f"{{{CRS_NS}}}"
    values: Dict[str, RawValue] = {}
    for desc in descriptions:
        for key, value in desc.attrib.items():
            if key.startswith(prefix):
                values[key[len(prefix):]] = value

        for child in desc:
            if not child.tag.startswith(prefix):
                continue
            name = child.tag[len(prefix):]
            seq = child.find(_rdf("Seq"))
            if seq is not None:
                values[name] = [(li.text or "") for li in seq.findall(_rdf("li"))]
            else:
                values[name] = (child.text or "").strip()
    return values


def parse_number(raw: Optional[RawValue]) -> float:
    """Lenient number parse: '+0.50' -> 0.5, junk or NaN -> 0."""
    if not isinstance(raw, str):
        return 0.0
    try:
        value = float(raw.strip())
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def parse_tone_curve(raw: Optional[RawValue]) -> Optional[ToneCurve]:
    """'x, y' strings -> [[x, y], ...]. Malformed points are skipped."""
    if raw is None:
        return None
    items = raw if isinstance(raw, list) else [raw]

    points = []
    for item in items:
        parts = item.split(",")
        if len(parts) != 2:
            continue
        try:
            x, y = float(parts[0]), float(parts[1])
        except ValueError:
            continue
        if math.isfinite(x) and math.isfinite(y):
            points.append([int(x) if x.is_integer() else x, int(y) if y.is_integer() else y])
    return points or None


def parse_xmp(xmp: Union[str, bytes]) -> ImageProperties:
    """
    Parse an XMP document into a record.

    Missing fields keep the record defaults. Numbers that do not parse
    become 0; booleans are true only for 'True' (any case).

    Raises:
        XMPParseError: the document is not a Camera Raw settings packet
    """
    raw = read_crs_fields(xmp)
    if not raw:
        raise XMPParseError("Invalid XMP format: missing Camera Raw Settings")

    defaults = {f.name: f.default for f in fields(ImageProperties)}
    values = {}
    for field_name, crs_name, kind in CRS_PROPERTIES:
        value = raw.get(crs_name)
        if value is None and crs_name in CRS_ALIASES:
            value = raw.get(CRS_ALIASES[crs_name])

        if kind == CURVE:
            values[field_name] = parse_tone_curve(value)
        elif value is None:
            values[field_name] = defaults[field_name]
        elif kind == NUMBER:
            values[field_name] = parse_number(value)
        elif kind == BOOLEAN:
            values[field_name] = isinstance(value, str) and value.strip().lower() == "true"
        else:
            values[field_name] = value if isinstance(value, str) else ""

    return ImageProperties(**values)
