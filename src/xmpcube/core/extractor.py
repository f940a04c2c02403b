"""
XMP + Cube Extractor
====================

Analyzes a photograph and produces the adjustment record, the XMP
sidecar and the 3D LUT that reproduce its look.

Pipeline:
1. Decode (cv2) and read metadata (Pillow)
2. Downsample large images for analysis
3. Channel statistics -> scalar estimators
4. Per-band hue/saturation and tone curves, in parallel
5. Serialize to XMP and .cube

Usage:
    extractor = XMPCubeExtractor()
    result = extractor.extract(data, "photo.jpg")
    result.xmp_content, result.cube_content
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import cv2
import numpy as np

from xmpcube.core.camera_profiles import (
    CAMERA_PROFILES,
    CameraProfileSet,
    calculate_profile_digest,
    determine_camera_profile,
)
from xmpcube.core.channel_stats import compute_channel_stats
from xmpcube.core.color_analysis import (
    COLOR_BANDS,
    analyze_color_band,
    as_pixel_array,
    calculate_color_noise_reduction,
    calculate_color_temperature,
    calculate_saturation,
    calculate_shadow_tint,
    calculate_tint,
    calculate_vibrance,
    calculate_vignette_amount,
)
from xmpcube.core.color_space import rgb_to_lab_array
from xmpcube.core.lut import generate_cube_lut
from xmpcube.core.metadata import (
    ImageMetadata,
    determine_process_version,
    determine_tone_curve_name,
    determine_version,
    determine_white_balance,
    has_crop,
    read_image_metadata,
)
from xmpcube.core.properties import ImageProperties, ToneCurve
from xmpcube.core.quality_analysis import (
    calculate_clarity,
    calculate_luminance_smoothing,
    calculate_sharpness,
    calculate_texture,
)
from xmpcube.core.split_toning import (
    calculate_split_toning_balance,
    calculate_split_toning_highlight_hue,
    calculate_split_toning_highlight_saturation,
    calculate_split_toning_shadow_hue,
    calculate_split_toning_shadow_saturation,
)
from xmpcube.core.tone_analysis import (
    calculate_brightness,
    calculate_contrast,
    calculate_dehaze,
    calculate_exposure,
    calculate_highlights,
    calculate_parametric_darks,
    calculate_parametric_highlight_split,
    calculate_parametric_highlights,
    calculate_parametric_lights,
    calculate_parametric_midtone_split,
    calculate_parametric_shadow_split,
    calculate_parametric_shadows,
    calculate_shadows,
    calculate_tone_map_strength,
)
from xmpcube.core.tone_curves import calculate_all_tone_curves, default_tone_curve
from xmpcube.core.xmp import generate_xmp


logger = logging.getLogger(__name__)

EXTRACTOR_VERSION = "1.0.0"


@dataclass
class ExtractionSettings:
    """Tunables for analysis."""
    # Images above this many pixels are area-downsampled before analysis
    max_analysis_pixels: int = 4_000_000
    # Thread pool size for the per-band fan-out
    workers: int = 8


@dataclass
class ExtractionResult:
    xmp_content: str
    cube_content: str
    properties: ImageProperties


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode image bytes to an RGB uint8 array.

    Raises:
        ValueError: the bytes are not an image cv2 can read
    """
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
    if image is None:
        raise ValueError("Could not decode image")
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def downsample_for_analysis(image: np.ndarray, max_pixels: int) -> np.ndarray:
    """Shrink with INTER_AREA so the image holds at most ``max_pixels``."""
    h, w = image.shape[:2]
    if max_pixels <= 0 or h * w <= max_pixels:
        return image
    scale = math.sqrt(max_pixels / (h * w))
    size = (max(1, int(w * scale)), max(1, int(h * scale)))
    logger.debug("Downsampling %dx%d -> %dx%d for analysis", w, h, size[0], size[1])
    return cv2.resize(image, size, interpolation=cv2.INTER_AREA)


def _default_curves() -> Dict[str, ToneCurve]:
    return {
        "tone_curve": default_tone_curve(),
        "tone_curve_red": default_tone_curve(),
        "tone_curve_green": default_tone_curve(),
        "tone_curve_blue": default_tone_curve(),
    }


class XMPCubeExtractor:
    """
    Turns an image into an ImageProperties record plus its XMP and LUT.
    """

    def __init__(self,
                 settings: Optional[ExtractionSettings] = None,
                 camera_profiles: Mapping[str, CameraProfileSet] = CAMERA_PROFILES):
        self.settings = settings or ExtractionSettings()
        self.camera_profiles = camera_profiles

    # ==========================================
    # ANALYSIS
    # ==========================================

    def analyze(self, image: np.ndarray, metadata: Optional[ImageMetadata] = None) -> ImageProperties:
        """
        Estimate every adjustment for an RGB image.

        Args:
            image: RGB uint8 (H, W, 3)
            metadata: camera/file facts, defaults when None

        Returns:
            Fully populated ImageProperties
        """
        metadata = metadata or ImageMetadata(width=image.shape[1], height=image.shape[0])
        image = downsample_for_analysis(image, self.settings.max_analysis_pixels)
        channels = compute_channel_stats(image)

        bands, curves = self._analyze_parallel(image, channels)

        camera_profile = determine_camera_profile(metadata.make, self.camera_profiles)

        values = dict(
            exposure=calculate_exposure(channels),
            contrast=calculate_contrast(channels),
            brightness=calculate_brightness(channels),
            shadows=calculate_shadows(channels),
            highlights=calculate_highlights(channels),
            temperature=calculate_color_temperature(channels),
            tint=calculate_tint(channels),
            saturation=calculate_saturation(channels),
            vibrance=calculate_vibrance(channels),
            texture=calculate_texture(channels),
            clarity=calculate_clarity(channels),
            dehaze=calculate_dehaze(channels),
            sharpness=calculate_sharpness(metadata.density),
            luminance_smoothing=calculate_luminance_smoothing(channels),
            color_noise_reduction=calculate_color_noise_reduction(channels),
            shadow_tint=calculate_shadow_tint(channels),
            tone_map_strength=calculate_tone_map_strength(channels),

            split_toning_shadow_hue=calculate_split_toning_shadow_hue(channels),
            split_toning_shadow_saturation=calculate_split_toning_shadow_saturation(channels),
            split_toning_highlight_hue=calculate_split_toning_highlight_hue(channels),
            split_toning_highlight_saturation=calculate_split_toning_highlight_saturation(channels),
            split_toning_balance=calculate_split_toning_balance(channels),

            parametric_shadows=calculate_parametric_shadows(channels),
            parametric_darks=calculate_parametric_darks(channels),
            parametric_lights=calculate_parametric_lights(channels),
            parametric_highlights=calculate_parametric_highlights(channels),
            parametric_shadow_split=calculate_parametric_shadow_split(channels),
            parametric_midtone_split=calculate_parametric_midtone_split(channels),
            parametric_highlight_split=calculate_parametric_highlight_split(channels),

            vignette_amount=calculate_vignette_amount(channels),

            tone_curve_name=determine_tone_curve_name(channels),
            camera_profile=camera_profile,
            camera_profile_digest=calculate_profile_digest(camera_profile),
            has_settings=True,
            has_crop=has_crop(metadata),
            already_applied=False,
            white_balance=determine_white_balance(metadata),
            version=determine_version(metadata),
            process_version=determine_process_version(metadata),
        )
        for band, (hue, saturation) in bands.items():
            values[f"{band}_hue"] = hue
            values[f"{band}_saturation"] = saturation
        values.update(curves)

        return ImageProperties(**values)

    def _analyze_parallel(self, image, channels) -> Tuple[Dict[str, Tuple[int, int]], Dict[str, ToneCurve]]:
        """One task per color band plus the tone curves; waits for all of them."""
        lab = None
        try:
            lab = rgb_to_lab_array(as_pixel_array(image, allow_pixel_list=False))
        except ValueError as e:
            logger.warning("Skipping color band analysis: %s", e)

        with ThreadPoolExecutor(max_workers=max(1, self.settings.workers)) as executor:
            band_futures = {
                band: executor.submit(analyze_color_band, band, image, lab)
                for band in COLOR_BANDS
            } if lab is not None else {}
            curve_future = executor.submit(self._tone_curves, image, channels)

            bands = {band: future.result() for band, future in band_futures.items()}
            curves = curve_future.result()

        return bands, curves

    @staticmethod
    def _tone_curves(image, channels) -> Dict[str, ToneCurve]:
        try:
            return calculate_all_tone_curves(image, channels)
        except Exception:
            logger.exception("Tone curve analysis failed, using defaults")
            return _default_curves()

    # ==========================================
    # EXTRACTION
    # ==========================================

    def extract(self, data: bytes, filename: str) -> ExtractionResult:
        """
        Analyze encoded image bytes.

        Raises:
            ValueError: the bytes cannot be decoded
        """
        image = decode_image(data)
        metadata = read_image_metadata(data)
        logger.info("Extracting %s (%dx%d)", filename, image.shape[1], image.shape[0])

        properties = self.analyze(image, metadata)
        return ExtractionResult(
            xmp_content=generate_xmp(filename, properties),
            cube_content=generate_cube_lut(properties, filename),
            properties=properties,
        )

    def extract_file(self, path, output_dir=None) -> Tuple[Path, Path]:
        """Write ``<stem>.xmp`` and ``<stem>.cube`` next to the image (or in output_dir)."""
        path = Path(path)
        result = self.extract(path.read_bytes(), path.name)

        target = Path(output_dir) if output_dir else path.parent
        target.mkdir(parents=True, exist_ok=True)
        xmp_path = target / f"{path.stem}.xmp"
        cube_path = target / f"{path.stem}.cube"
        xmp_path.write_text(result.xmp_content, encoding="utf-8")
        cube_path.write_text(result.cube_content, encoding="utf-8")
        return xmp_path, cube_path


# ==========================================
# CLI
# ==========================================

def main():
    import argparse

    parser = argparse.ArgumentParser(description='Extract an XMP preset and 3D LUT from a photo')
    parser.add_argument('--input', '-i', required=True, help='Input image')
    parser.add_argument('--output-dir', '-o', help='Directory for the .xmp and .cube (default: beside input)')
    parser.add_argument('--workers', type=int, default=8, help='Analysis threads')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    extractor = XMPCubeExtractor(ExtractionSettings(workers=args.workers))
    try:
        xmp_path, cube_path = extractor.extract_file(args.input, args.output_dir)
    except (OSError, ValueError) as e:
        print(f"Error: Could not process {args.input}: {e}")
        return 1

    print(f"Saved: {xmp_path}")
    print(f"Saved: {cube_path}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
