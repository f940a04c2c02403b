"""
Local Adjustment Detection
==========================

Finds regions that look like they were edited locally:

- Gradient masks: segments whose luminance ramps steadily
- Radial masks: circular edge patterns (simplified Hough search)
- Brush masks: connected runs of strong edges

Detection runs on a downscaled grey copy; coordinates are reported in
the original image's pixel space.
"""

import logging
import math
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Tuple

import cv2
import numpy as np


logger = logging.getLogger(__name__)

MAX_DETECTION_SIZE = 512

# Gradients
GRADIENT_SEGMENTS = 10
GRADIENT_THRESHOLD = 0.2
GRADIENT_FEATHER = 0.2

# Radials
LAPLACIAN_KERNEL = np.array([
    [-1, -1, -1],
    [-1, 8, -1],
    [-1, -1, -1],
], dtype=np.float32)
EDGE_VALUE = 128
GRID_STEP = 10
LOCAL_EDGE_RADIUS = 5
LOCAL_EDGE_THRESHOLD = 0.3
MIN_RADIUS_FRACTION = 0.1
MAX_RADIUS_FRACTION = 0.4
RADIUS_STEP = 10
CIRCLE_THRESHOLD = 0.4

# Brushes
MIN_STROKE_POINTS = 10
BRUSH_FEATHER = 5
BRUSH_FLOW = 0.8
BRUSH_DENSITY = 0.8
BRUSH_SIZE_TOLERANCE = 5
MAX_COMPARE_POINTS = 200

NEIGHBORS = [(dx, dy) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if dx or dy]


@dataclass
class Point:
    x: float
    y: float


@dataclass
class GradientMask:
    start_point: Point
    end_point: Point
    angle: float
    feather: float
    opacity: float
    type: str = "gradient"

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class Circle:
    center: Point
    radius: float
    strength: float


@dataclass
class RadialMask:
    center: Point
    radius: float
    feather: float
    opacity: float
    aspect_ratio: float = 1.0
    angle: float = 0.0
    type: str = "radial"

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class BrushStroke:
    points: List[Point] = field(default_factory=list)
    pressure: List[float] = field(default_factory=list)


@dataclass
class BrushMask:
    strokes: List[BrushStroke]
    size: float
    opacity: float
    feather: float = BRUSH_FEATHER
    flow: float = BRUSH_FLOW
    density: float = BRUSH_DENSITY
    type: str = "brush"

    @property
    def points(self) -> List[Point]:
        return [p for stroke in self.strokes for p in stroke.points]

    def bounds(self) -> Tuple[float, float, float, float]:
        xs = [p.x for p in self.points]
        ys = [p.y for p in self.points]
        return min(xs), min(ys), max(xs), max(ys)

    def to_dict(self) -> Dict:
        """Summary without the (potentially huge) point lists."""
        x0, y0, x1, y1 = self.bounds()
        return {
            "type": self.type,
            "size": self.size,
            "opacity": self.opacity,
            "feather": self.feather,
            "flow": self.flow,
            "density": self.density,
            "stroke_count": len(self.strokes),
            "point_count": sum(len(s.points) for s in self.strokes),
            "bounds": {"x0": x0, "y0": y0, "x1": x1, "y1": y1},
        }


# ==========================================
# PREPARATION
# ==========================================

def to_luminance(image: np.ndarray) -> np.ndarray:
    """RGB (or grey) uint8 -> grey uint8."""
    if image.ndim == 2:
        return image.astype(np.uint8)
    return cv2.cvtColor(image[:, :, :3].astype(np.uint8), cv2.COLOR_RGB2GRAY)


def downscale(grey: np.ndarray, max_size: int = MAX_DETECTION_SIZE) -> Tuple[np.ndarray, float]:
    """Returns (image, factor) where original coords = detected coords * factor."""
    h, w = grey.shape[:2]
    longest = max(h, w)
    if longest <= max_size:
        return grey, 1.0
    scale = max_size / longest
    size = (max(1, int(round(w * scale))), max(1, int(round(h * scale))))
    small = cv2.resize(grey, size, interpolation=cv2.INTER_AREA)
    return small, w / size[0]


def edge_map(grey: np.ndarray) -> np.ndarray:
    """Laplacian edges, clamped to uint8."""
    edges = cv2.filter2D(grey.astype(np.float32), -1, LAPLACIAN_KERNEL, borderType=cv2.BORDER_REPLICATE)
    return np.clip(edges, 0, 255).astype(np.uint8)


# ==========================================
# GRADIENTS
# ==========================================

def gradient_strength(profile: np.ndarray) -> float:
    """Mean absolute step of a luminance profile, normalized to 0-1."""
    if len(profile) < 2:
        return 0.0
    return float(min(1.0, np.abs(np.diff(profile)).mean() / 25.5))


def detect_directional_gradients(grey: np.ndarray, direction: str) -> List[GradientMask]:
    height, width = grey.shape
    horizontal = direction == "horizontal"
    # Column means for horizontal ramps, row means for vertical ones
    profile = grey.mean(axis=0) if horizontal else grey.mean(axis=1)
    segment_size = len(profile) // GRADIENT_SEGMENTS

    gradients = []
    if segment_size == 0:
        return gradients

    for segment in range(GRADIENT_SEGMENTS):
        start = segment * segment_size
        end = start + segment_size
        strength = gradient_strength(profile[start:end])
        if strength <= GRADIENT_THRESHOLD:
            continue

        if horizontal:
            start_point, end_point, angle = Point(start, 0), Point(end, height), 0
        else:
            start_point, end_point, angle = Point(0, start), Point(width, end), 90
        gradients.append(GradientMask(
            start_point=start_point,
            end_point=end_point,
            angle=angle,
            feather=math.floor(segment_size * GRADIENT_FEATHER),
            opacity=strength,
        ))
    return gradients


def detect_gradient_areas(grey: np.ndarray) -> List[GradientMask]:
    if grey.size == 0:
        return []
    return (detect_directional_gradients(grey, "horizontal")
            + detect_directional_gradients(grey, "vertical"))


# ==========================================
# RADIALS
# ==========================================

def local_edge_strength(edges: np.ndarray) -> np.ndarray:
    """Mean edge value over an 11x11 window, 0-1."""
    size = 2 * LOCAL_EDGE_RADIUS + 1
    return cv2.blur(edges.astype(np.float32), (size, size), borderType=cv2.BORDER_REPLICATE) / 255.0


def circle_match(edges: np.ndarray, cx: int, cy: int, radius: float) -> float:
    """Fraction of points on the circle that land on an edge pixel."""
    height, width = edges.shape
    samples = int(math.floor(2 * math.pi * radius))
    if samples <= 0:
        return 0.0

    angles = 2 * np.pi * np.arange(samples) / samples
    xs = np.floor(cx + radius * np.cos(angles)).astype(np.int64)
    ys = np.floor(cy + radius * np.sin(angles)).astype(np.int64)
    inside = (xs >= 0) & (xs < width) & (ys >= 0) & (ys < height)
    hits = edges[ys[inside], xs[inside]] > EDGE_VALUE
    return float(hits.sum()) / samples


def find_circular_patterns(edges: np.ndarray) -> List[Circle]:
    height, width = edges.shape
    min_radius = min(width, height) * MIN_RADIUS_FRACTION
    max_radius = min(width, height) * MAX_RADIUS_FRACTION
    radii = np.arange(min_radius, max_radius + 1e-9, RADIUS_STEP) if min_radius > 0 else []

    strength = local_edge_strength(edges)
    circles = []
    for y in range(0, height, GRID_STEP):
        for x in range(0, width, GRID_STEP):
            if strength[y, x] <= LOCAL_EDGE_THRESHOLD:
                continue
            for r in radii:
                match = circle_match(edges, x, y, float(r))
                if match > CIRCLE_THRESHOLD:
                    circles.append(Circle(center=Point(x, y), radius=float(r), strength=match))
    return merge_overlapping_circles(circles)


def merge_overlapping_circles(circles: List[Circle]) -> List[Circle]:
    """Greedy merge: a circle absorbs later ones closer than half their summed radii."""
    merged = []
    used = set()
    for i, circle in enumerate(circles):
        if i in used:
            continue
        used.add(i)
        current = circle
        for j in range(i + 1, len(circles)):
            if j in used:
                continue
            other = circles[j]
            distance = math.hypot(current.center.x - other.center.x, current.center.y - other.center.y)
            if distance < (current.radius + other.radius) * 0.5:
                current = Circle(
                    center=Point((current.center.x + other.center.x) / 2,
                                 (current.center.y + other.center.y) / 2),
                    radius=(current.radius + other.radius) / 2,
                    strength=max(current.strength, other.strength),
                )
                used.add(j)
        merged.append(current)
    return merged


def detect_radial_areas(edges: np.ndarray) -> List[RadialMask]:
    if edges.size == 0:
        return []
    return [
        RadialMask(
            center=c.center,
            radius=c.radius,
            feather=math.floor(c.radius * 0.2),
            opacity=c.strength,
        )
        for c in find_circular_patterns(edges)
    ]


# ==========================================
# BRUSHES
# ==========================================

def trace_brush_stroke(edges: np.ndarray, start: int, visited: np.ndarray) -> BrushStroke:
    """
    Breadth-first walk over 8-connected edge pixels from flat index ``start``.

    ``visited`` is a flat bool array shared across calls.
    """
    height, width = edges.shape
    flat = edges.ravel()
    stroke = BrushStroke()
    queue = deque([start])

    while queue:
        index = queue.popleft()
        if visited[index]:
            continue
        visited[index] = True

        y, x = divmod(index, width)
        stroke.points.append(Point(x, y))
        stroke.pressure.append(flat[index] / 255.0)

        for dx, dy in NEIGHBORS:
            nx, ny = x + dx, y + dy
            if 0 <= nx < width and 0 <= ny < height:
                n_index = ny * width + nx
                if flat[n_index] > EDGE_VALUE and not visited[n_index]:
                    queue.append(n_index)
    return stroke


def estimate_brush_size(stroke: BrushStroke, edges: np.ndarray) -> float:
    """Widest distance (both sides) to the first non-edge pixel across the stroke."""
    height, width = edges.shape
    max_width = 0
    for i in range(0, len(stroke.points), 5):
        point = stroke.points[i]
        if i > 0:
            prev = stroke.points[i - 1]
            dx, dy = point.x - prev.x, point.y - prev.y
        else:
            dx, dy = 0, 1

        perp_x, perp_y = -dy, dx
        length = math.hypot(perp_x, perp_y)
        if length == 0:
            continue
        norm_x, norm_y = perp_x / length, perp_y / length

        local_width = 0
        for d in range(1, 20):
            x = math.floor(point.x + d * norm_x)
            y = math.floor(point.y + d * norm_y)
            if not (0 <= x < width and 0 <= y < height):
                continue
            if edges[y, x] < EDGE_VALUE:
                local_width = d
                break
        max_width = max(max_width, local_width * 2)
    return float(max_width)


def _sample_points(mask: BrushMask) -> np.ndarray:
    points = np.array([(p.x, p.y) for p in mask.points], dtype=np.float64)
    if len(points) > MAX_COMPARE_POINTS:
        step = int(math.ceil(len(points) / MAX_COMPARE_POINTS))
        points = points[::step]
    return points


def brush_masks_similar(a: BrushMask, b: BrushMask) -> bool:
    """Similar size and at least one pair of points within twice a's size."""
    if abs(a.size - b.size) > BRUSH_SIZE_TOLERANCE:
        return False
    pa, pb = _sample_points(a), _sample_points(b)
    if len(pa) == 0 or len(pb) == 0:
        return False
    distances = np.sqrt(((pa[:, np.newaxis, :] - pb[np.newaxis, :, :]) ** 2).sum(axis=2))
    return bool((distances < a.size * 2).any())


def merge_brush_masks(a: BrushMask, b: BrushMask) -> BrushMask:
    return BrushMask(
        strokes=a.strokes + b.strokes,
        size=max(a.size, b.size),
        opacity=max(a.opacity, b.opacity),
        feather=max(a.feather, b.feather),
        flow=max(a.flow, b.flow),
        density=max(a.density, b.density),
    )


def merge_similar_brush_masks(masks: List[BrushMask]) -> List[BrushMask]:
    merged = []
    used = set()
    for i, mask in enumerate(masks):
        if i in used:
            continue
        used.add(i)
        current = mask
        for j in range(i + 1, len(masks)):
            if j not in used and brush_masks_similar(current, masks[j]):
                current = merge_brush_masks(current, masks[j])
                used.add(j)
        merged.append(current)
    return merged


def detect_brush_areas(edges: np.ndarray) -> List[BrushMask]:
    if edges.size == 0:
        return []

    visited = np.zeros(edges.size, dtype=bool)
    masks = []
    for index in np.flatnonzero(edges.ravel() > EDGE_VALUE):
        if visited[index]:
            continue
        stroke = trace_brush_stroke(edges, int(index), visited)
        if len(stroke.points) <= MIN_STROKE_POINTS:
            continue
        masks.append(BrushMask(
            strokes=[stroke],
            size=estimate_brush_size(stroke, edges),
            opacity=float(np.mean(stroke.pressure)),
        ))
    return merge_similar_brush_masks(masks)


# ==========================================
# ENTRY POINT
# ==========================================

def _scale_point(p: Point, factor: float) -> Point:
    return Point(p.x * factor, p.y * factor)


def _rescale(gradients, radials, brushes, factor: float):
    if factor == 1.0:
        return gradients, radials, brushes
    for g in gradients:
        g.start_point = _scale_point(g.start_point, factor)
        g.end_point = _scale_point(g.end_point, factor)
        g.feather *= factor
    for r in radials:
        r.center = _scale_point(r.center, factor)
        r.radius *= factor
        r.feather *= factor
    for b in brushes:
        for stroke in b.strokes:
            stroke.points = [_scale_point(p, factor) for p in stroke.points]
        b.size *= factor
    return gradients, radials, brushes


def detect_local_adjustments(image: np.ndarray, max_size: int = MAX_DETECTION_SIZE) -> Dict[str, list]:
    """
    Detect gradient, radial and brush masks.

    Args:
        image: RGB or grey uint8
        max_size: longest side used for detection

    Returns:
        {"gradients": [...], "radials": [...], "brushes": [...]}
    """
    grey, factor = downscale(to_luminance(image), max_size)
    edges = edge_map(grey)

    gradients = detect_gradient_areas(grey)
    radials = detect_radial_areas(edges)
    brushes = detect_brush_areas(edges)
    logger.info("Local adjustments: %d gradients, %d radials, %d brushes",
                len(gradients), len(radials), len(brushes))

    gradients, radials, brushes = _rescale(gradients, radials, brushes, factor)
    return {"gradients": gradients, "radials": radials, "brushes": brushes}
