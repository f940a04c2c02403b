"""
Image Properties
================

The flat adjustment record produced by analysis and consumed by the LUT
emitter, the XMP writer and the apply path. A parsed XMP document
produces the same record (``XMPAdjustments``), so everything that can be
written can be read back.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Optional

from xmpcube.core.color_analysis import COLOR_BANDS


ToneCurve = List[List[float]]

DEFAULT_VERSION = "15.0"
DEFAULT_PROCESS_VERSION = "15.0"


@dataclass(frozen=True)
class ImageProperties:
    """Photographic adjustments in Camera Raw units."""
    # Basic
    exposure: float = 0.0
    contrast: float = 0.0
    brightness: float = 0.0
    shadows: float = 0.0
    highlights: float = 0.0
    whites: float = 0.0
    blacks: float = 0.0
    temperature: float = 0.0
    tint: float = 0.0
    saturation: float = 0.0
    vibrance: float = 0.0
    texture: float = 0.0
    clarity: float = 0.0
    dehaze: float = 0.0
    sharpness: float = 0.0
    luminance_smoothing: float = 0.0
    color_noise_reduction: float = 0.0
    shadow_tint: float = 0.0
    tone_map_strength: float = 0.0

    # HSL per band
    red_hue: float = 0.0
    red_saturation: float = 0.0
    orange_hue: float = 0.0
    orange_saturation: float = 0.0
    yellow_hue: float = 0.0
    yellow_saturation: float = 0.0
    green_hue: float = 0.0
    green_saturation: float = 0.0
    aqua_hue: float = 0.0
    aqua_saturation: float = 0.0
    blue_hue: float = 0.0
    blue_saturation: float = 0.0
    purple_hue: float = 0.0
    purple_saturation: float = 0.0
    magenta_hue: float = 0.0
    magenta_saturation: float = 0.0

    # Split toning
    split_toning_shadow_hue: float = 0.0
    split_toning_shadow_saturation: float = 0.0
    split_toning_highlight_hue: float = 0.0
    split_toning_highlight_saturation: float = 0.0
    split_toning_balance: float = 0.0

    # Parametric curve
    parametric_shadows: float = 0.0
    parametric_darks: float = 0.0
    parametric_lights: float = 0.0
    parametric_highlights: float = 0.0
    parametric_shadow_split: float = 25.0
    parametric_midtone_split: float = 50.0
    parametric_highlight_split: float = 75.0

    # Effects
    vignette_amount: float = 0.0
    vignette_feather: Optional[float] = None
    vignette_midpoint: Optional[float] = None
    grain_amount: Optional[float] = None
    grain_size: Optional[float] = None
    grain_frequency: Optional[float] = None

    # Tone curves
    tone_curve: Optional[ToneCurve] = None
    tone_curve_red: Optional[ToneCurve] = None
    tone_curve_green: Optional[ToneCurve] = None
    tone_curve_blue: Optional[ToneCurve] = None
    tone_curve_name: str = ""

    # Profile / metadata
    camera_profile: str = ""
    camera_profile_digest: str = ""
    has_settings: bool = False
    has_crop: bool = False
    already_applied: bool = False
    white_balance: str = ""
    version: str = ""
    process_version: str = ""

    def band_hue(self, band: str) -> float:
        return getattr(self, f"{band}_hue")

    def band_saturation(self, band: str) -> float:
        return getattr(self, f"{band}_saturation")

    @property
    def has_color_adjustments(self) -> bool:
        return any(self.band_hue(b) or self.band_saturation(b) for b in COLOR_BANDS)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# A parsed XMP document carries exactly the same fields
XMPAdjustments = ImageProperties


def property_names() -> List[str]:
    return [f.name for f in fields(ImageProperties)]
